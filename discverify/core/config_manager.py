from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from discverify import config
from discverify.common.exceptions import ConfigurationError


class ConfigManager:
    """Gere a persistência de configurações do utilizador em formato JSON."""

    def __init__(self, config_file: Path | str | None = config.SETTINGS_DEFAULT):
        self.config_path = Path(config_file) if config_file else None
        self.values: dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        """Carrega as configurações do disco, fundindo com os defaults."""
        self.values = {
            "chunk_size": config.CHUNK_SIZE_DEFAULT,
            "cache_dir": config.CACHE_DIR_DEFAULT,
            "redump_base_url": config.REDUMP_BASE_URL,
            "request_timeout": config.REQUEST_TIMEOUT_DEFAULT,
            "log_format": "auto",
        }

        if self.config_path is not None and self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    stored = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigurationError(
                    f"Ficheiro de configuração inválido: {self.config_path}",
                    {"reason": str(e)},
                ) from e
            if not isinstance(stored, dict):
                raise ConfigurationError(
                    f"Ficheiro de configuração inválido: {self.config_path}"
                )
            self.values.update(stored)

        self._validate()

    def _validate(self) -> None:
        chunk_size = self.values.get("chunk_size")
        if not isinstance(chunk_size, int) or isinstance(chunk_size, bool) or chunk_size <= 0:
            raise ConfigurationError(
                "chunk_size tem de ser um inteiro positivo", {"chunk_size": chunk_size}
            )
        timeout = self.values.get("request_timeout")
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigurationError(
                "request_timeout tem de ser positivo", {"request_timeout": timeout}
            )

    def save(self) -> bool:
        """Grava as configurações atuais no disco."""
        if self.config_path is None:
            return False
        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(self.values, f, indent=4, ensure_ascii=False)
            return True
        except OSError:
            return False

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.values[key] = value

    @property
    def chunk_size(self) -> int:
        return int(self.values["chunk_size"])

    @property
    def cache_dir(self) -> Path:
        return Path(str(self.values["cache_dir"])).expanduser()
