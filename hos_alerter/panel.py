"""
HOS Alerter 패널 컨트롤러
Geotab add-in 생명주기(initialize / focus / blur)와 사용자 동작을 RecipientStore 호출로
연결하고, 결과를 상태 배너와 busy 표시 데이터로 변환한다 (마크업 생성은 화면 계층 담당)
"""

import itertools
import logging
import re
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .config import Config
from .recipients import (
    DuplicateRecipient,
    InvalidRecipient,
    Recipient,
    RecipientStore,
    RecipientStoreError,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)

ADD_BUTTON = "addRecipientBtn"
REFRESH_BUTTON = "refreshBtn"


class Severity(Enum):
    """배너 심각도"""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"


@dataclass
class StatusBanner:
    """일정 시간 후 자동으로 닫히는 상태 배너"""

    banner_id: str
    message: str
    severity: Severity
    shown_at: float
    dismiss_after: float

    def is_expired(self, now: float) -> bool:
        return now - self.shown_at >= self.dismiss_after


class BannerBoard:
    """상태 배너 목록"""

    def __init__(
        self,
        dismiss_after: float = Config.ALERT_DISMISS_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.dismiss_after = dismiss_after
        self._clock = clock
        self._banners: List[StatusBanner] = []
        self._ids = itertools.count(1)

    def show(self, message: str, severity: Severity = Severity.INFO) -> StatusBanner:
        banner = StatusBanner(
            banner_id=f"alert-{next(self._ids)}",
            message=message,
            severity=severity,
            shown_at=self._clock(),
            dismiss_after=self.dismiss_after,
        )
        self._banners.append(banner)
        return banner

    def dismiss(self, banner_id: str) -> bool:
        before = len(self._banners)
        self._banners = [b for b in self._banners if b.banner_id != banner_id]
        return len(self._banners) < before

    def active(self) -> List[StatusBanner]:
        """만료된 배너를 정리하고 표시 중인 배너 반환"""
        now = self._clock()
        self._banners = [b for b in self._banners if not b.is_expired(now)]
        return list(self._banners)

    @property
    def latest(self) -> Optional[StatusBanner]:
        return self._banners[-1] if self._banners else None


def remove_button_id(email: str) -> str:
    """수신인별 삭제 버튼 식별자 (영숫자만 사용)"""
    return "remove-" + re.sub(r"[^a-zA-Z0-9]", "", email)


def session_database(session: Any) -> Optional[str]:
    """세션 객체(dict 또는 속성)에서 database 값 추출"""
    if session is None:
        return None
    if isinstance(session, dict):
        return session.get("database")
    return getattr(session, "database", None)


class HosAlerterPanel:
    """HOS 알림 수신인 관리 패널"""

    def __init__(self, store: Optional[RecipientStore] = None, banners: Optional[BannerBoard] = None):
        self.store = store or RecipientStore()
        self.banners = banners or BannerBoard()
        self.api = None
        self.state = None
        self.database: Optional[str] = None
        self.recipients: List[Recipient] = []
        self.visible = False
        self.loading = False
        self.busy = set()

    # --- 생명주기 ---
    def initialize(self, api, state, initialize_callback: Callable[[], None]):
        """add-in 최초 로드"""
        self.api = api
        self.state = state
        initialize_callback()

    def focus(self, api, state):
        """
        패널 활성화: 세션에서 테넌트를 얻고 설정 문서 확인 후 수신인 로드

        Args:
            api: get_session(callback)을 제공하는 호스트 API
            state: 호스트 상태 객체
        """
        self.api = api
        self.state = state
        self.loading = True
        self.visible = True

        try:
            api.get_session(self._on_session)
        except Exception as e:
            logger.error(f"세션 조회 실패: {e}")
            self._show_error("Error connecting to database", e)
            self.loading = False

    def blur(self):
        """패널 비활성화"""
        self.visible = False

    def _on_session(self, session):
        self.database = session_database(session)
        logger.info(f"현재 데이터베이스: {self.database}")

        try:
            self.store.ensure_tenant_configuration(self.database)
        except Exception as e:
            logger.error(f"HOS 설정 확인 실패: {e}")
            self._show_error("Error connecting to database", e)
            self.loading = False
            return

        self.load_recipients()

    # --- 사용자 동작 ---
    def load_recipients(self) -> List[Recipient]:
        """현재 테넌트의 수신인 목록 다시 읽기"""
        if not self.database:
            self.banners.show("Database not initialized", Severity.DANGER)
            self.loading = False
            return self.recipients

        try:
            self.recipients = self.store.list_recipients(self.database)
        except Exception as e:
            logger.error(f"수신인 로드 실패: {e}")
            self._show_error("Error loading recipients", e)
            self.recipients = []
        finally:
            self.loading = False

        return self.recipients

    def refresh(self) -> List[Recipient]:
        """새로고침 버튼"""
        with self._busy(REFRESH_BUTTON):
            return self.load_recipients()

    def submit_recipient(self, email: str) -> StatusBanner:
        """수신인 추가 폼 제출"""
        email = self._form_email(email)
        if not email:
            return self.banners.show(InvalidRecipient.default_message, Severity.WARNING)

        if not self.database:
            return self.banners.show("Database not initialized", Severity.DANGER)

        with self._busy(ADD_BUTTON):
            try:
                self.store.add_recipient(self.database, email)
            except DuplicateRecipient as e:
                return self.banners.show(e.message, Severity.WARNING)
            except Exception as e:
                logger.error(f"수신인 추가 실패: {e}")
                return self._show_error("Error adding recipient", e)

            banner = self.banners.show(
                f"Successfully added {email} to HOS alert recipients", Severity.SUCCESS
            )
            self.load_recipients()
            return banner

    def remove_recipient(self, email: str) -> StatusBanner:
        """수신인 삭제 버튼"""
        email = self._form_email(email)
        if not email:
            return self.banners.show(InvalidRecipient.default_message, Severity.WARNING)

        if not self.database:
            return self.banners.show("Database not initialized", Severity.DANGER)

        with self._busy(remove_button_id(email)):
            try:
                self.store.remove_recipient(self.database, email)
            except Exception as e:
                logger.error(f"수신인 삭제 실패: {e}")
                return self._show_error("Error removing recipient", e)

            banner = self.banners.show(
                f"Successfully removed {email} from recipient list", Severity.SUCCESS
            )
            self.load_recipients()
            return banner

    # --- 화면 데이터 ---
    @property
    def recipient_count(self) -> int:
        return len(self.recipients)

    def view(self) -> Dict[str, Any]:
        """화면 계층에 전달할 데이터"""
        return {
            "database": self.database,
            "visible": self.visible,
            "loading": self.loading,
            "busy": sorted(self.busy),
            "recipients": [r.to_item() for r in self.recipients],
            "recipient_count": self.recipient_count,
            "alerts": [
                {"id": b.banner_id, "message": b.message, "type": b.severity.value}
                for b in self.banners.active()
            ],
        }

    @staticmethod
    def _form_email(email) -> str:
        """입력값 정리 (문자열이 아니면 빈 값으로 취급)"""
        try:
            return Recipient.normalize_email(email)
        except InvalidRecipient:
            return ""

    @contextmanager
    def _busy(self, control_id: str):
        self.busy.add(control_id)
        try:
            yield
        finally:
            self.busy.discard(control_id)

    def _show_error(self, context: str, error: Exception) -> StatusBanner:
        if isinstance(error, RecipientStoreError) and not isinstance(error, StoreUnavailable):
            return self.banners.show(error.message, Severity(error.severity))
        return self.banners.show(f"{context}: {error}", Severity.DANGER)
