"""Hierarquia de exceções do discverify.

Só o que impede a verificação de começar (imagem ilegível) ou o que indica
uso incorreto da API é lançado. Tudo o resto é registado como dados:
problemas no relatório ou o estado da base de dados de referência.
"""

from __future__ import annotations
from typing import Optional, Any


# ============================================================================
# BASE EXCEPTIONS
# ============================================================================

class DiscVerifyError(Exception):
    """Exceção base para todos os erros do discverify."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(DiscVerifyError):
    """Erro relacionado à configuração do sistema."""
    pass


# ============================================================================
# VOLUME ERRORS
# ============================================================================

class VolumeOpenError(DiscVerifyError):
    """A imagem não pode ser aberta como volume GameCube/Wii."""

    def __init__(self, path: str, reason: str = ""):
        msg = f"Failed to open volume {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, {"path": path})
        self.path = path
        self.reason = reason


# Nome usado pelas bindings
OpenError = VolumeOpenError


# ============================================================================
# REFERENCE DATABASE ERRORS
# ============================================================================

class ReferenceLookupError(DiscVerifyError):
    """Base de dados de referência inacessível ou com dados inválidos."""
    pass


class DownloadError(ReferenceLookupError):
    """Erro ao fazer download de ficheiro."""

    def __init__(self, url: str, reason: str = ""):
        msg = f"Failed to download {url}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, {"url": url})
        self.url = url
        self.reason = reason


class DATParseError(ReferenceLookupError):
    """Erro ao fazer parse de ficheiro DAT."""

    def __init__(self, path: str, reason: str = ""):
        msg = f"Failed to parse DAT {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, {"path": path})
        self.path = path
        self.reason = reason


# ============================================================================
# CALLER ERRORS
# ============================================================================

class ContractViolation(DiscVerifyError, RuntimeError):
    """Uso incorreto da API (índice fora do intervalo, ordem de chamadas).

    São erros de programação: nunca devem ser apanhados e convertidos em
    resultados.
    """
    pass


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def format_exception_chain(exc: Exception) -> str:
    """Formata uma exceção com toda a cadeia de causas.

    Args:
        exc: Exceção a formatar

    Returns:
        String formatada com a exceção e suas causas
    """
    messages = []
    current = exc
    while current is not None:
        if isinstance(current, DiscVerifyError):
            messages.append(str(current))
        else:
            messages.append(f"{type(current).__name__}: {current}")
        current = getattr(current, "__cause__", None)

    return " → ".join(messages)
