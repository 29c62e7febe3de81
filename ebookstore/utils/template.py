from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ebookstore.config import settings

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)
# every email links back to the storefront and signs with the store name
env.globals.update(store_name=settings.store_name, app_url=settings.app_url)


def render_template(template_path: str, **context) -> str:
    return env.get_template(template_path).render(**context)
