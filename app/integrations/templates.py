"""
Jinja2 rendering for outbound documents (emails, POA agreement).
"""

from decimal import Decimal
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


def format_money(value: Optional[Decimal]) -> str:
    return f"${value:,.2f}" if value is not None else "-"


_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["money"] = format_money


def render(template_name: str, **context) -> str:
    return _env.get_template(template_name).render(**context)
