"""
HOS 수신인 관리 API Lambda 핸들러
Lambda Function URL을 통해 호출되어 수신인 조회/추가/삭제 처리
"""
import json
import logging
from typing import Optional

from ..recipients import (
    ConcurrentModification,
    DuplicateRecipient,
    InvalidRecipient,
    Recipient,
    RecipientStore,
    RecipientStoreError,
    StoreUnavailable,
    TenantNotFound,
    TenantNotInitialized,
)

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

# CORS 헤더
HEADERS = {
    "Content-Type": "application/json; charset=utf-8",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
}

STATUS_CODES = {
    InvalidRecipient: 400,
    TenantNotInitialized: 400,
    TenantNotFound: 404,
    DuplicateRecipient: 409,
    ConcurrentModification: 409,
    StoreUnavailable: 503,
}

_store: Optional[RecipientStore] = None


def _get_store() -> RecipientStore:
    global _store
    if _store is None:
        _store = RecipientStore()
    return _store


def _response(status_code: int, body: dict) -> dict:
    return {
        "statusCode": status_code,
        "headers": HEADERS,
        "body": json.dumps(body, ensure_ascii=False),
    }


def _recipients_response(recipients, status_code: int = 200) -> dict:
    return _response(
        status_code,
        {"recipients": [r.to_item() for r in recipients], "count": len(recipients)},
    )


def _error_response(error: RecipientStoreError) -> dict:
    status_code = next(
        (code for cls, code in STATUS_CODES.items() if isinstance(error, cls)), 500
    )
    return _response(status_code, {"message": error.message, "severity": error.severity})


def _parse_body(event: dict) -> dict:
    """요청 본문(JSON) 파싱 (base64 인코딩은 Function URL 설정상 사용하지 않음)"""
    body = event.get("body")
    if not body:
        return {}
    parsed = json.loads(body)
    return parsed if isinstance(parsed, dict) else {}


def _http_method(event: dict) -> str:
    method = event.get("httpMethod")
    if not method:
        method = event.get("requestContext", {}).get("http", {}).get("method", "")
    return method.upper()


def handler(event, context, store: Optional[RecipientStore] = None):
    """
    수신인 관리 Lambda 핸들러

    Args:
        event: Function URL / API Gateway 이벤트
        context: Lambda 컨텍스트
        store: 테스트용 RecipientStore 주입

    Returns:
        API Gateway 응답
    """
    method = _http_method(event)
    logger.info(f"수신인 API 요청: {method}")

    # OPTIONS 요청 처리 (CORS preflight)
    if method == "OPTIONS":
        return {"statusCode": 200, "headers": HEADERS, "body": ""}

    store = store or _get_store()

    try:
        params = dict(event.get("queryStringParameters") or {})
        params.update(_parse_body(event))
    except json.JSONDecodeError as e:
        logger.warning(f"잘못된 요청 본문: {e}")
        return _response(400, {"message": "Invalid JSON body", "severity": "warning"})

    try:
        database = params.get("database")
        if database is not None and not isinstance(database, str):
            raise TenantNotInitialized()
        database = (database or "").strip()
        email = Recipient.normalize_email(params.get("email"))

        if method == "GET":
            if not database:
                raise TenantNotInitialized()
            return _recipients_response(store.list_recipients(database))

        if method == "PUT":
            if not database:
                raise TenantNotInitialized()
            created = store.ensure_tenant_configuration(database)
            recipients = store.list_recipients(database)
            return _recipients_response(recipients, 201 if created else 200)

        if method == "POST":
            return _recipients_response(store.add_recipient(database, email))

        if method == "DELETE":
            return _recipients_response(store.remove_recipient(database, email))

    except RecipientStoreError as e:
        logger.warning(f"수신인 API 처리 실패 ({type(e).__name__}): {e}")
        return _error_response(e)
    except Exception as e:
        logger.error(f"수신인 API 처리 중 예상치 못한 오류: {e}", exc_info=True)
        return _response(500, {"message": "Internal server error", "severity": "danger"})

    return _response(405, {"message": f"Method not allowed: {method}", "severity": "warning"})
