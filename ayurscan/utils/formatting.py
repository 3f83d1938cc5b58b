"""
Оформление итогового текста отчёта: заголовок, дисклеймер, подпись провайдера
"""
from ayurscan.utils.constants import (
    APP_NAME,
    APP_VERSION,
    DISCLAIMER_TEXT,
    PROVIDER_LABELS,
    REPORT_DIVIDER,
    REPORT_HEADER,
)


def powered_by_line(provider_id: str) -> str:
    label = PROVIDER_LABELS.get(provider_id, provider_id)
    return f"🤖 Powered by {label} | {APP_NAME} v{APP_VERSION}"


def format_final_response(text: str, provider_id: str) -> str:
    """Оборачивает ответ провайдера в единый формат отчёта"""
    return "\n".join([
        REPORT_HEADER,
        REPORT_DIVIDER,
        "",
        text.strip(),
        "",
        REPORT_DIVIDER,
        "",
        DISCLAIMER_TEXT,
        "",
        REPORT_DIVIDER,
        powered_by_line(provider_id),
    ])
