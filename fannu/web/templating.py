"""
Shared Jinja2 templates for page routes
"""

from pathlib import Path

from fastapi.templating import Jinja2Templates

from ..config import settings
from ..utils import (
    format_date,
    format_datetime,
    format_etb,
    format_phone_number,
    format_relative_time,
    utcnow,
)

BASE_DIR = Path(__file__).parent

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
templates.env.globals["now"] = utcnow
templates.env.globals["support_link"] = settings.support_link
templates.env.globals["support_whatsapp"] = settings.support_whatsapp
templates.env.filters["etb"] = format_etb
templates.env.filters["date"] = format_date
templates.env.filters["datetime"] = format_datetime
templates.env.filters["relative"] = format_relative_time
templates.env.filters["phone"] = format_phone_number


def label(value) -> str:
    """LIVE_PERFORMANCE -> Live performance"""
    text = getattr(value, "value", value) or ""
    return text.replace("_", " ").capitalize()


templates.env.filters["label"] = label
