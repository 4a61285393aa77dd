from __future__ import annotations

from enum import Enum
from typing import Optional


class FailureReason(str, Enum):
    """Why an external call failed, decided where the failure is detected."""

    NETWORK = "network"
    VIDEO_UNAVAILABLE = "video_unavailable"
    RATE_LIMITED = "rate_limited"


INVALID_URL_MESSAGE = "URL do YouTube inválida ou não fornecida."
VIDEO_INACCESSIBLE_MESSAGE = "Não foi possível acessar o vídeo. Verifique se o link está correto e se o vídeo é público."
PROVIDER_NOT_CONFIGURED_MESSAGE = "Serviço de transcrição não configurado. Defina a variável ASSEMBLYAI_API_KEY."
GENERIC_FAILURE_MESSAGE = "Erro interno durante a transcrição. Tente novamente mais tarde."
SERVER_ERROR_MESSAGE = "Erro interno do servidor"
NOT_FOUND_MESSAGE = "Rota não encontrada"

REASON_MESSAGES = {
    FailureReason.NETWORK: "Erro de conexão. Verifique sua internet e tente novamente.",
    FailureReason.VIDEO_UNAVAILABLE: "Vídeo não disponível, privado ou com restrição de acesso.",
    FailureReason.RATE_LIMITED: "Limite de uso da API de transcrição atingido. Tente novamente em alguns minutos.",
}


def message_for_reason(reason: Optional[FailureReason]) -> str:
    if reason is None:
        return GENERIC_FAILURE_MESSAGE
    return REASON_MESSAGES.get(reason, GENERIC_FAILURE_MESSAGE)


def duration_exceeded_message(minutes: int, max_minutes: int) -> str:
    return f"O vídeo tem {minutes} minutos. O limite máximo é de {max_minutes} minutos."


class TranscriberError(Exception):
    """
    Base class for every failure the transcription handler reports.

    ``message`` is what the caller sees; ``detail`` is the raw underlying
    error text, only exposed outside production.
    """

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None, reason: Optional[FailureReason] = None):
        self.reason = reason
        self.message = message or message_for_reason(reason)
        self.detail = detail
        super().__init__(detail or self.message)


class InvalidInput(TranscriberError):
    status_code = 400
    code = "invalid_input"


class ConfigurationError(TranscriberError):
    code = "configuration_error"


class DownloadError(TranscriberError):
    code = "download_error"


class TranscriptionError(TranscriberError):
    code = "transcription_error"


class InternalError(TranscriberError):
    code = "internal_error"
