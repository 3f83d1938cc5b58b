"""
Клиенты внешних AI провайдеров (Mistral chat completions и Gemini generateContent)

Один вызов analyze = один HTTP запрос. Повторы и переключение на запасной
провайдер делает оркестратор, а не клиент.
"""
import logging
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

import requests
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ayurscan.services.image_service import PreparedImage
from ayurscan.utils.constants import (
    GEMINI_SAFETY_SETTINGS,
    GEMINI_TOP_K,
    GEMINI_TOP_P,
    PROVIDER_LABELS,
    SYSTEM_PROMPT,
)

logger = logging.getLogger(__name__)


class ProviderId(str, Enum):
    MISTRAL = "mistral"
    GEMINI = "gemini"

    @property
    def label(self) -> str:
        return PROVIDER_LABELS[self.value]


# --- Ошибки провайдеров ---

class ProviderError(Exception):
    """Базовая ошибка вызова провайдера"""

    kind = "provider_error"

    def __init__(self, message: str = "", provider_id: Optional[str] = None):
        super().__init__(message or self.kind)
        self.message = message
        self.provider_id = provider_id
        # Ошибки предыдущих попыток (заполняет оркестратор при fallback)
        self.previous_errors: List["ProviderError"] = []

    @property
    def user_message(self) -> str:
        return "❓ Analysis failed"

    def to_dict(self) -> Dict:
        return {
            "provider": self.provider_id,
            "kind": self.kind,
            "message": self.message,
        }


class ProviderTimeout(ProviderError):
    kind = "timeout"

    @property
    def user_message(self) -> str:
        return "⏱️ The analysis service did not respond in time"


class Unauthorized(ProviderError):
    kind = "unauthorized"

    @property
    def user_message(self) -> str:
        return "🔐 API key invalid"


class RateLimited(ProviderError):
    kind = "rate_limited"

    @property
    def user_message(self) -> str:
        return "⏳ Rate limited, try again"


class ServerError(ProviderError):
    kind = "server_error"

    @property
    def user_message(self) -> str:
        return "🌐 Server error"


class ApiError(ProviderError):
    kind = "api_error"

    @property
    def user_message(self) -> str:
        return f"❌ {self.message}"


class UnknownError(ProviderError):
    kind = "unknown_error"

    def __init__(self, status_code: int, provider_id: Optional[str] = None):
        super().__init__(f"HTTP {status_code}", provider_id)
        self.status_code = status_code

    @property
    def user_message(self) -> str:
        return f"❓ Error {self.status_code}"


class InvalidResponse(ProviderError):
    kind = "invalid_response"

    @property
    def user_message(self) -> str:
        return "📡 Invalid response"


class ProviderConnectionError(ProviderError):
    kind = "connection_error"

    @property
    def user_message(self) -> str:
        return "📡 Could not reach the analysis service"


# --- Конфигурация ---

class ProviderConfig(BaseModel):
    """Статическая конфигурация провайдера, не меняется после инициализации"""
    model_config = ConfigDict(frozen=True)

    provider_id: ProviderId
    endpoint: str
    auth_token: Optional[str] = Field(None, repr=False)
    model_name: str
    timeout_seconds: int = 90
    max_output_tokens: int = 2048
    temperature: float = Field(0.4, ge=0, le=2)


def build_provider_configs(settings) -> Dict[ProviderId, ProviderConfig]:
    """Собирает конфигурации провайдеров из Settings"""
    common = {
        "timeout_seconds": settings.request_timeout_seconds,
        "max_output_tokens": settings.max_output_tokens,
        "temperature": settings.temperature,
    }
    return {
        ProviderId.MISTRAL: ProviderConfig(
            provider_id=ProviderId.MISTRAL,
            endpoint=settings.mistral_api_url,
            auth_token=settings.mistral_api_key,
            model_name=settings.mistral_model,
            **common,
        ),
        ProviderId.GEMINI: ProviderConfig(
            provider_id=ProviderId.GEMINI,
            endpoint=settings.gemini_api_url.format(model=settings.gemini_model),
            auth_token=settings.gemini_api_key,
            model_name=settings.gemini_model,
            **common,
        ),
    }


# --- Конверты ответов ---

class _Envelope(BaseModel):
    model_config = ConfigDict(extra="ignore")


class _ChatMessage(_Envelope):
    content: str


class _ChatChoice(_Envelope):
    message: _ChatMessage


class ChatCompletionEnvelope(_Envelope):
    """Ответ chat completions: choices[0].message.content"""
    provider: Literal["mistral"] = "mistral"
    model: Optional[str] = None
    choices: List[_ChatChoice] = Field(min_length=1)

    @property
    def text(self) -> str:
        return self.choices[0].message.content


class _Part(_Envelope):
    text: str


class _Content(_Envelope):
    parts: List[_Part] = Field(min_length=1)


class _Candidate(_Envelope):
    content: _Content


class GenerateContentEnvelope(_Envelope):
    """Ответ generateContent: candidates[0].content.parts[0].text"""
    provider: Literal["gemini"] = "gemini"
    model: Optional[str] = Field(None, alias="modelVersion")
    candidates: List[_Candidate] = Field(min_length=1)

    @property
    def text(self) -> str:
        return self.candidates[0].content.parts[0].text


ProviderEnvelope = Annotated[
    Union[ChatCompletionEnvelope, GenerateContentEnvelope],
    Field(discriminator="provider"),
]

_envelope_adapter = TypeAdapter(ProviderEnvelope)


class ProviderCompletion(BaseModel):
    """Общее внутреннее представление ответа любого провайдера"""
    provider_id: ProviderId
    text: str
    model: Optional[str] = None


def decode_envelope(provider_id: ProviderId, payload) -> ProviderCompletion:
    """Разбирает JSON ответа провайдера в ProviderCompletion"""
    if not isinstance(payload, dict):
        raise InvalidResponse("Ответ провайдера не является JSON объектом", provider_id.value)
    try:
        envelope = _envelope_adapter.validate_python({**payload, "provider": provider_id.value})
    except ValidationError as e:
        raise InvalidResponse(f"Неожиданная структура ответа: {e.error_count()} ошибок", provider_id.value) from e

    text = envelope.text.strip()
    if not text:
        raise InvalidResponse("Провайдер вернул пустой текст", provider_id.value)
    return ProviderCompletion(provider_id=provider_id, text=text, model=envelope.model)


# --- Клиенты ---

class ProviderClient:
    """Один провайдер: построение запроса, авторизация, таймаут, разбор статуса"""

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    def provider_id(self) -> ProviderId:
        return self.config.provider_id

    @property
    def label(self) -> str:
        return self.provider_id.label

    @property
    def configured(self) -> bool:
        return bool(self.config.auth_token)

    def build_request(self, image: PreparedImage, prompt: str, json_mode: bool = False):
        """Возвращает (url, headers, params, payload)"""
        raise NotImplementedError

    def analyze(self, image: PreparedImage, prompt: str, json_mode: bool = False) -> str:
        """Отправляет изображение и промпт, возвращает текст первого ответа"""
        pid = self.provider_id.value
        if not self.configured:
            logger.warning(f"{self.label}: API ключ не настроен")
            raise Unauthorized("API key not configured", pid)

        url, headers, params, payload = self.build_request(image, prompt, json_mode)

        try:
            response = requests.post(
                url,
                headers=headers,
                params=params,
                json=payload,
                timeout=self.config.timeout_seconds,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"⏱️ {self.label}: превышено время ожидания {self.config.timeout_seconds}с")
            raise ProviderTimeout(f"Timed out after {self.config.timeout_seconds}s", pid) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"{self.label}: ошибка соединения: {e}")
            raise ProviderConnectionError(str(e), pid) from e

        logger.info(f"📡 {self.label} статус: {response.status_code}")
        if response.status_code != 200:
            raise self._error_for_status(response)

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponse(f"Ответ не является JSON: {e}", pid) from e

        completion = decode_envelope(self.provider_id, data)
        logger.info(f"📥 Получен ответ от {self.label} (длина: {len(completion.text)} символов)")
        return completion.text

    def _error_for_status(self, response) -> ProviderError:
        pid = self.provider_id.value
        status = response.status_code
        logger.error(f"{self.label} API error: HTTP {status}")
        logger.debug(f"Ответ сервера: {response.text[:500]}")

        if status in (401, 403):
            return Unauthorized(f"HTTP {status}", pid)
        if status == 429:
            return RateLimited(f"HTTP {status}", pid)
        if 500 <= status < 600:
            return ServerError(f"HTTP {status}", pid)

        message = _extract_error_message(response)
        if message:
            return ApiError(message, pid)
        return UnknownError(status, pid)


class MistralClient(ProviderClient):
    """Chat completions: data URI в image_url, bearer токен"""

    def build_request(self, image: PreparedImage, prompt: str, json_mode: bool = False):
        headers = {
            "Authorization": f"Bearer {self.config.auth_token}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.config.model_name,
            "messages": [
                {
                    "role": "system",
                    "content": SYSTEM_PROMPT
                },
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "text",
                            "text": prompt
                        },
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": f"data:{image.mime_type};base64,{image.to_base64()}"
                            }
                        }
                    ]
                }
            ],
            "max_tokens": self.config.max_output_tokens,
            "temperature": self.config.temperature
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        return self.config.endpoint, headers, None, payload


class GeminiClient(ProviderClient):
    """generateContent: inline_data, ключ в query параметре"""

    def build_request(self, image: PreparedImage, prompt: str, json_mode: bool = False):
        headers = {"Content-Type": "application/json"}
        params = {"key": self.config.auth_token}
        generation_config = {
            "temperature": self.config.temperature,
            "topK": GEMINI_TOP_K,
            "topP": GEMINI_TOP_P,
            "maxOutputTokens": self.config.max_output_tokens
        }
        if json_mode:
            generation_config["responseMimeType"] = "application/json"

        payload = {
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "contents": [{
                "parts": [
                    {"text": prompt},
                    {"inline_data": {"mime_type": image.mime_type, "data": image.to_base64()}}
                ]
            }],
            "generationConfig": generation_config,
            "safetySettings": GEMINI_SAFETY_SETTINGS
        }
        return self.config.endpoint, headers, params, payload


CLIENT_CLASSES = {
    ProviderId.MISTRAL: MistralClient,
    ProviderId.GEMINI: GeminiClient,
}


def create_client(config: ProviderConfig) -> ProviderClient:
    return CLIENT_CLASSES[config.provider_id](config)


def _extract_error_message(response) -> Optional[str]:
    """Достаёт error.message из тела ответа, если оно есть"""
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None
