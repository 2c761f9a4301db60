"""
수신인 / 테넌트 설정 데이터 모델
"""
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from .errors import InvalidRecipient


# local@domain 형태만 확인 (로컬 파트의 특수문자는 허용)
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+$"


def utc_now_iso() -> str:
    """현재 UTC 시각 (ISO-8601 문자열)"""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Recipient:
    """HOS 알림 수신인"""

    email: str
    added_at: str

    @staticmethod
    def normalize_email(email: Optional[str]) -> str:
        """앞뒤 공백 제거 (대소문자는 유지, 정확히 일치 비교). 문자열이 아니면 InvalidRecipient"""
        if email is None:
            return ""
        if not isinstance(email, str):
            raise InvalidRecipient()
        return email.strip()

    @staticmethod
    def validate_email(email: str) -> bool:
        """
        이메일 주소 유효성 검증

        Args:
            email: 검증할 이메일 주소

        Returns:
            유효한 이메일이면 True
        """
        return re.match(EMAIL_PATTERN, email) is not None

    @classmethod
    def create_new(cls, email: str, added_at: Optional[str] = None) -> "Recipient":
        return cls(email=email, added_at=added_at or utc_now_iso())

    @classmethod
    def from_item(cls, item: dict) -> "Recipient":
        return cls(email=item["email"], added_at=item.get("added_at", ""))

    def to_item(self) -> dict:
        return {"email": self.email, "added_at": self.added_at}


@dataclass
class TenantConfiguration:
    """테넌트(Geotab 데이터베이스)별 HOS 설정 문서"""

    database_name: str
    recipients: List[Recipient] = field(default_factory=list)
    active: bool = True
    created_at: str = ""
    updated_at: str = ""
    revision: int = 0

    @classmethod
    def create_new(cls, database_name: str, now: Optional[str] = None) -> "TenantConfiguration":
        """
        신규 설정 문서 생성 (수신인 없음, 활성 상태)

        Args:
            database_name: 테넌트 식별자
            now: 생성 시각 (기본값: 현재 UTC)
        """
        timestamp = now or utc_now_iso()
        return cls(
            database_name=database_name,
            recipients=[],
            active=True,
            created_at=timestamp,
            updated_at=timestamp,
            revision=0,
        )

    @classmethod
    def from_item(cls, item: dict) -> "TenantConfiguration":
        """
        저장소 아이템을 TenantConfiguration 객체로 변환
        recipients/revision 필드가 없는 문서는 빈 목록 / 0으로 취급
        """
        return cls(
            database_name=item["database_name"],
            recipients=[Recipient.from_item(r) for r in item.get("recipients") or []],
            active=bool(item.get("active", True)),
            created_at=item.get("created_at", ""),
            updated_at=item.get("updated_at", ""),
            revision=int(item.get("revision", 0) or 0),
        )

    def to_item(self) -> dict:
        return {
            "database_name": self.database_name,
            "recipients": [r.to_item() for r in self.recipients],
            "active": self.active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "revision": self.revision,
        }

    def has_recipient(self, email: str) -> bool:
        return any(r.email == email for r in self.recipients)

    @property
    def emails(self) -> List[str]:
        return [r.email for r in self.recipients]
