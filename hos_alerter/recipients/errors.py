"""
수신인 관리 오류 정의
각 오류는 사용자 표시용 메시지와 배너 심각도(severity)를 가진다
"""


class RecipientStoreError(Exception):
    """수신인 저장소 오류 기본 클래스"""

    severity = "danger"
    default_message = "Unexpected error"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class StoreUnavailable(RecipientStoreError):
    """문서 저장소 조회/쓰기 실패 (자동 재시도 없음)"""

    default_message = "Error connecting to database"


class TenantNotFound(RecipientStoreError):
    """테넌트 설정 문서 없음"""

    default_message = "Database configuration not found"


class TenantNotInitialized(RecipientStoreError):
    """테넌트 식별자가 지정되지 않음"""

    default_message = "Database not initialized"


class DuplicateRecipient(RecipientStoreError):
    """이미 등록된 수신인"""

    severity = "warning"
    default_message = "Recipient already exists"


class InvalidRecipient(RecipientStoreError):
    """비어 있거나 형식이 잘못된 이메일"""

    severity = "warning"
    default_message = "Please enter a valid email address"


class ConcurrentModification(RecipientStoreError):
    """revision 충돌 재시도 한도 초과"""

    default_message = "Recipient list was modified concurrently, please retry"
