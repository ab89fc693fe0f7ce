"""
Form helpers shared by the page routes
"""

from decimal import Decimal, InvalidOperation

from fastapi import Request

CHECKBOX_ON = ("on", "true", "1", "yes")


async def read_form(request: Request, list_fields: tuple = ()) -> dict:
    """Form body as a dict; list_fields keep every submitted value"""
    form = await request.form()
    payload = {key: value for key, value in form.items() if key not in list_fields}
    for key in list_fields:
        payload[key] = [value for value in form.getlist(key) if str(value).strip()]
    return payload


def checkbox(payload: dict, *names: str) -> dict:
    """Unchecked boxes are absent from the body, so set each flag explicitly"""
    for name in names:
        payload[name] = str(payload.get(name, "")).lower() in CHECKBOX_ON
    return payload


def to_cents(payload: dict, *names: str) -> dict:
    """
    Amounts are typed in whole ETB and stored in cents.

    Values that do not parse are left alone so schema validation reports
    them against the field.
    """
    for name in names:
        value = payload.get(name)
        if value is None or str(value).strip() == "":
            continue
        try:
            payload[name] = int(Decimal(str(value).replace(",", "").strip()) * 100)
        except (InvalidOperation, ValueError, OverflowError):
            pass
    return payload
