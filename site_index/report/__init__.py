"""site_index.report: Отчёты с результатами поиска (JSON и HTML) для CLI."""

from site_index.report.html_report import render_html
from site_index.report.json_report import render_json, results_payload

__all__ = ["render_json", "render_html", "results_payload"]
