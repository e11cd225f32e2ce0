# === FILE: context_scribe/config.py ===
"""
Модуль для загрузки и валидации конфигурации ContextScribe.
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

CleanupMode = Literal["none", "language", "rules", "llm"]


class LLMConfig(BaseModel):
    """Параметры OpenAI-совместимого сервиса для варианта очистки ``llm``."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    endpoint: str = Field(
        "https://api.openai.com/v1/chat/completions",
        description="URL chat-completions эндпоинта.",
    )
    model: str = Field("gpt-4o-mini", min_length=1, description="Имя модели.")
    api_key_env: str = Field("OPENAI_API_KEY", description="Переменная окружения с ключом API.")
    timeout: float = Field(120.0, gt=0, description="Таймаут запроса к модели (секунд).")

    @property
    def api_key(self) -> str | None:
        return os.environ.get(self.api_key_env) or None


class ScribeConfig(BaseModel):
    """Конфигурация сервиса и движка сбора документации."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    concurrency: int = Field(10, ge=1, description="Макс. число одновременных запросов.")
    timeout: float = Field(30.0, gt=0, description="Таймаут на один запрос (секунд).")
    user_agent: str = Field("ContextScribe/1.0", min_length=1, description="Заголовок User-Agent.")
    retry_times: int = Field(0, ge=0, description="Число повторных попыток при 429/5xx.")

    cache_dir: Path = Field(Path(".cache"), description="Каталог кэша готовых документов.")
    cache_ttl_hours: float = Field(24.0, gt=0, description="Окно свежести кэша (часов).")

    cleanup: CleanupMode = Field("rules", description="Вариант финальной очистки документа.")
    target_language: str = Field("en", min_length=2, description="Сохраняемый язык (ISO 639-1).")
    min_line_chars: int = Field(30, ge=0, description="Короткие строки не проверяются по языку.")
    keep_partial_on_stop: bool = Field(
        False, description="Отдавать частичный документ при остановке."
    )
    llm: LLMConfig = Field(default_factory=LLMConfig)

    host: str = Field("127.0.0.1", description="Адрес HTTP-сервера.")
    port: int = Field(8080, ge=1, le=65535, description="Порт HTTP-сервера.")

    @field_validator("target_language", mode="before")
    def _lower_language(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_hours * 3600


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


def load_config(path: Union[str, Path, None]) -> ScribeConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект ScribeConfig.
    Без пути берёт configs/default.yaml, а если его нет, значения по умолчанию.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return ScribeConfig()
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

    return ScribeConfig(**data)
