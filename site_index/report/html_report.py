"""site_index.report.html_report: Генерация HTML-отчёта с результатами поиска с помощью Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from site_index.models import QueryResult

#: шаблоны, поставляемые вместе с пакетом
DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
TEMPLATE_NAME = "results.html.j2"


def render_html(
    results: Sequence[QueryResult],
    output_path: Union[Path, str],
    *,
    domain: str = "",
    query: str = "",
    template_dir: Union[Path, str, None] = None,
) -> Path:
    """Рендерит HTML-страницу результатов поиска и сохраняет её по указанному пути.

    Заголовки и сниппеты приходят из QueryEngine уже экранированными, с разметкой
    подсветки, поэтому выводятся как есть; остальной текст экранируется autoescape.

    Args:
        results: список QueryResult.
        output_path: путь к итоговому HTML-файлу.
        domain: домен, по которому выполнялся поиск.
        query: поисковый запрос.
        template_dir: директория с Jinja2-шаблонами (по умолчанию шаблоны пакета).

    Returns:
        Path до сохранённого HTML-файла.
    """
    template_dir = Path(template_dir) if template_dir else DEFAULT_TEMPLATE_DIR
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    template = env.get_template(TEMPLATE_NAME)

    context: dict[str, Any] = {
        "domain": domain,
        "query": query,
        "results": [r.as_dict() for r in results],
    }

    output_path.write_text(template.render(**context), encoding="utf-8")
    return output_path
