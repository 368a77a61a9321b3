# site_index/report/json_report.py

"""
Генерация JSON-отчёта с результатами поиска SiteIndex.
"""
import json
from pathlib import Path
from typing import Sequence

from site_index.models import QueryResult


def results_payload(results: Sequence[QueryResult]) -> dict:
    """Ответ поиска в том же виде, что отдаёт HTTP API."""
    return {"results": [r.as_dict() for r in results]}


def render_json(
    results: Sequence[QueryResult],
    output_path: Path | str,
    *,
    pretty: bool = True,
) -> Path:
    """
    Сохраняет результаты поиска в формате JSON по указанному пути.

    :param results: список QueryResult
    :param output_path: путь к JSON-файлу
    :param pretty: форматировать с отступом 2
    :return: Path сохранённого файла

    Пример:
    ```python
    from site_index.report.json_report import render_json
    report_path = render_json(results, 'reports/search.json')
    print(f"JSON report saved to: {report_path}")
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open('w', encoding='utf-8') as f:
        json.dump(results_payload(results), f, ensure_ascii=False, indent=2 if pretty else None)

    return output
