from fastapi import HTTPException, Request


def get_client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get('x-forwarded-for')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    if request.client:
        return request.client.host
    return None


async def read_json_body(request: Request) -> dict:
    try:
        payload = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail='Invalid JSON body') from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail='Expected a JSON object')
    return payload


def parse_record_id(value: object, label: str) -> int:
    raw = str(value if value is not None else '').strip()
    if not raw.isdigit():
        raise HTTPException(status_code=400, detail=f'Invalid {label}')
    return int(raw)
