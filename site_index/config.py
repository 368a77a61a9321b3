# === FILE: site_index/config.py ===
"""
Модуль для загрузки и валидации конфигурации индексатора SiteIndex.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


class SearchConfig(BaseModel):
    """Параметры ранжирования и подсветки результатов поиска."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_results: int = Field(10, ge=1, description="Максимальное число результатов.")
    snippet_radius: int = Field(40, ge=0, description="Символов контекста вокруг совпадения.")
    preview_length: int = Field(160, ge=1, description="Длина сниппета без совпадения в тексте.")
    exact_default: bool = Field(True, description="Режим поиска по умолчанию: точная подстрока.")
    fuzzy_threshold: float = Field(0.8, gt=0, le=1, description="Порог сходства для нечеткого поиска.")
    highlight_open: str = Field("<mark>", min_length=1)
    highlight_close: str = Field("</mark>", min_length=1)


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = "127.0.0.1"
    port: int = Field(3000, ge=1, le=65535)


class IndexerConfig(BaseModel):
    """Конфигурация обхода, хранения индексов и поиска."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    scheme: Literal["http", "https"] = Field("https", description="Схема для origin сайта.")
    data_dir: Path = Field(Path("data/cached-indexes"), description="Каталог JSON-индексов.")
    timeout: float = Field(10.0, gt=0, description="Таймаут на один запрос (секунд).")
    user_agent: str = Field("SiteIndexBot/1.0", min_length=1, description="Заголовок User-Agent.")
    rate_limit: float = Field(5.0, gt=0, description="Лимит запросов в секунду на один обход.")
    retry_times: int = Field(2, ge=0, description="Число повторных попыток при 5xx/429.")
    backoff_base: float = Field(0.5, ge=0, description="Базовая задержка экспоненциального backoff.")
    concurrency: int = Field(2, ge=1, description="Число воркеров на один обход.")
    max_connections: int = Field(8, ge=1, description="Общий лимит исходящих запросов.")
    respect_robots: bool = Field(True, description="Пропускать страницы, запрещённые robots.txt.")
    content_selector: str = Field("main", min_length=1, description="CSS-селектор основного контента.")
    max_sitemaps: int = Field(50, ge=0, description="Лимит вложенных sitemap в sitemapindex.")
    subscriber_wait: float = Field(0.0, ge=0, description="Сколько ждать подписчика прогресса.")
    progress_wait: float = Field(30.0, gt=0, description="Сколько поток прогресса ждёт появления неизвестной задачи.")
    job_history: int = Field(1000, ge=1, description="Сколько завершённых задач хранить для /admin/jobs.")
    crawl_on_miss: bool = Field(False, description="Запускать обход при поиске по неиндексированному домену.")

    search: SearchConfig = Field(default_factory=SearchConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @field_validator("data_dir", mode="before")
    def _expand_data_dir(cls, v: Any) -> Any:
        if isinstance(v, (str, Path)):
            return Path(v).expanduser()
        return v


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None] = None) -> IndexerConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект IndexerConfig.
    Без пути берётся configs/default.yaml, а при его отсутствии значения по умолчанию.
    Явно указанный, но отсутствующий файл даёт FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return IndexerConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    return IndexerConfig(**data)
