"""
HOS 알림 수신인 관리 비즈니스 로직 (StorageBackend 위임)

모든 연산은 테넌트 식별자(Geotab 데이터베이스명)를 명시적으로 받는다.
조회 -> 판단 -> 쓰기 순서로 처리하며, 쓰기는 읽은 시점의 revision을 조건으로
걸어 동시 수정 시 최신 값을 다시 읽어 재시도한다.
"""

import logging
import time
from typing import Callable, List, Optional

from ..config import Config
from ..storage import RevisionConflict, StorageBackend, StorageError, get_storage_backend
from ..structured_logging import (
    get_structured_logger,
    log_configuration_created,
    log_recipient_change,
    log_store_failure,
)
from .errors import (
    ConcurrentModification,
    DuplicateRecipient,
    InvalidRecipient,
    StoreUnavailable,
    TenantNotFound,
    TenantNotInitialized,
)
from .models import Recipient, TenantConfiguration, utc_now_iso

logger = logging.getLogger(__name__)
events = get_structured_logger(__name__)


class RecipientStore:
    """테넌트별 HOS 수신인 목록 관리자"""

    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        clock: Callable[[], str] = utc_now_iso,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        초기화 (StorageBackend lazy)

        Args:
            backend: 스토리지 백엔드 (기본값: 환경별 싱글톤)
            clock: ISO-8601 타임스탬프 생성 함수
            max_attempts: revision 충돌 시 최대 시도 횟수
            backoff_seconds: 재시도 기본 대기 시간 (시도마다 2배)
            sleep: 대기 함수
        """
        self._backend = backend
        self._clock = clock
        self.max_attempts = max_attempts or Config.CONFLICT_MAX_ATTEMPTS
        self.backoff_seconds = (
            Config.CONFLICT_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        )
        self._sleep = sleep

    def _get_backend(self) -> StorageBackend:
        """StorageBackend lazy 초기화"""
        if self._backend is None:
            self._backend = get_storage_backend()
        return self._backend

    @staticmethod
    def is_persistable(tenant_id: Optional[str]) -> bool:
        """저장 대상 테넌트인지 확인 (빈 값과 demo는 저장하지 않음)"""
        return bool(tenant_id) and tenant_id != Config.DEMO_DATABASE

    def _read(self, tenant_id: str, operation: str) -> Optional[TenantConfiguration]:
        try:
            item = self._get_backend().get_configuration(tenant_id)
        except StorageError as e:
            log_store_failure(events, operation, tenant_id, str(e))
            raise StoreUnavailable(str(e)) from e
        if item is None:
            return None
        return TenantConfiguration.from_item(item)

    def get_configuration(self, tenant_id: str) -> Optional[TenantConfiguration]:
        """
        설정 문서 조회 (캐시 없이 매번 저장소에서 읽음)

        Returns:
            TenantConfiguration 또는 None
        """
        if not self.is_persistable(tenant_id):
            return None
        return self._read(tenant_id, "get_configuration")

    def ensure_tenant_configuration(self, tenant_id: str) -> bool:
        """
        테넌트 설정 문서가 없으면 생성

        Args:
            tenant_id: 테넌트 식별자

        Returns:
            이번 호출에서 문서를 생성했으면 True
        """
        if not self.is_persistable(tenant_id):
            logger.info(f"저장하지 않는 테넌트: {tenant_id!r}")
            return False

        if self._read(tenant_id, "ensure") is not None:
            logger.info(f"이미 존재하는 HOS 설정: {tenant_id}")
            return False

        configuration = TenantConfiguration.create_new(tenant_id, self._clock())
        try:
            created = self._get_backend().create_configuration(configuration.to_item())
        except StorageError as e:
            log_store_failure(events, "ensure", tenant_id, str(e))
            raise StoreUnavailable(str(e)) from e

        if created:
            log_configuration_created(events, tenant_id)
        else:
            # 조회와 생성 사이에 다른 세션이 먼저 생성함
            logger.info(f"다른 세션이 먼저 HOS 설정 생성: {tenant_id}")
        return created

    def list_recipients(self, tenant_id: str) -> List[Recipient]:
        """
        수신인 목록 조회 (추가 순서 유지)

        설정 문서가 없으면 빈 목록을 반환한다. 저장소 오류만 예외로 처리한다.
        """
        if not self.is_persistable(tenant_id):
            return []

        configuration = self._read(tenant_id, "list")
        if configuration is None:
            return []

        logger.info(f"수신인 조회 완료: {tenant_id} ({len(configuration.recipients)}명)")
        return configuration.recipients

    def list_tenants(self) -> List[TenantConfiguration]:
        """모든 테넌트 설정 조회"""
        try:
            items = self._get_backend().list_configurations()
        except StorageError as e:
            log_store_failure(events, "list_tenants", "*", str(e))
            raise StoreUnavailable(str(e)) from e
        return [TenantConfiguration.from_item(item) for item in items]

    def add_recipient(self, tenant_id: str, email: str) -> List[Recipient]:
        """
        수신인 추가

        Args:
            tenant_id: 테넌트 식별자
            email: 이메일 주소 (앞뒤 공백 제거 후 정확히 일치 비교)

        Returns:
            갱신된 수신인 목록

        Raises:
            InvalidRecipient: 비어 있거나 형식이 잘못된 이메일
            TenantNotFound: 설정 문서 없음
            DuplicateRecipient: 이미 등록된 이메일
            StoreUnavailable: 저장소 오류
        """
        email = Recipient.normalize_email(email)
        if not email or not Recipient.validate_email(email):
            raise InvalidRecipient()
        self._check_tenant(tenant_id)

        def append(configuration: TenantConfiguration) -> List[Recipient]:
            if configuration.has_recipient(email):
                events.warning(
                    event="recipient_duplicate",
                    message=f"이미 존재하는 수신인: {email}",
                    database=tenant_id,
                    email=email,
                )
                raise DuplicateRecipient()
            return configuration.recipients + [Recipient.create_new(email, self._clock())]

        recipients = self._update_recipients(tenant_id, "add", append)
        log_recipient_change(events, "added", tenant_id, email, len(recipients))
        return recipients

    def remove_recipient(self, tenant_id: str, email: str) -> List[Recipient]:
        """
        수신인 삭제 (없는 이메일이어도 성공 처리)

        Args:
            tenant_id: 테넌트 식별자
            email: 이메일 주소

        Returns:
            갱신된 수신인 목록
        """
        email = Recipient.normalize_email(email)
        if not email:
            raise InvalidRecipient()
        self._check_tenant(tenant_id)

        def drop(configuration: TenantConfiguration) -> List[Recipient]:
            return [r for r in configuration.recipients if r.email != email]

        recipients = self._update_recipients(tenant_id, "remove", drop)
        log_recipient_change(events, "removed", tenant_id, email, len(recipients))
        return recipients

    def _check_tenant(self, tenant_id: str):
        if not tenant_id:
            raise TenantNotInitialized()
        if tenant_id == Config.DEMO_DATABASE:
            raise TenantNotFound()

    def _update_recipients(
        self,
        tenant_id: str,
        operation: str,
        compute: Callable[[TenantConfiguration], List[Recipient]],
    ) -> List[Recipient]:
        """최신 문서 조회 -> 새 목록 계산 -> revision 조건부 쓰기 (충돌 시 재시도)"""
        for attempt in range(1, self.max_attempts + 1):
            configuration = self._read(tenant_id, operation)
            if configuration is None:
                logger.warning(f"HOS 설정 없음: {tenant_id}")
                raise TenantNotFound()

            recipients = compute(configuration)

            try:
                item = self._get_backend().replace_recipients(
                    tenant_id,
                    [r.to_item() for r in recipients],
                    self._clock(),
                    configuration.revision,
                )
            except RevisionConflict as e:
                events.warning(
                    event="revision_conflict",
                    message=f"동시 수정 감지 (시도 {attempt}/{self.max_attempts}): {tenant_id}",
                    database=tenant_id,
                    operation=operation,
                    attempt=attempt,
                )
                if attempt >= self.max_attempts:
                    raise ConcurrentModification() from e
                self._sleep(self.backoff_seconds * (2 ** (attempt - 1)))
                continue
            except StorageError as e:
                log_store_failure(events, operation, tenant_id, str(e))
                raise StoreUnavailable(str(e)) from e

            if item:
                return TenantConfiguration.from_item(item).recipients
            return recipients

        # max_attempts >= 1 이므로 도달하지 않음
        raise ConcurrentModification()
