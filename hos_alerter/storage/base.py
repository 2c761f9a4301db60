from abc import ABC, abstractmethod
from typing import Dict, List, Optional


class StorageError(Exception):
    """저장소 전송/조회/쓰기 실패"""


class RevisionConflict(StorageError):
    """조건부 쓰기 실패 (읽은 이후 다른 쓰기가 먼저 반영됨)"""


class StorageBackend(ABC):
    """스토리지 백엔드 추상 인터페이스 (테넌트별 HOS 설정 문서)"""

    @abstractmethod
    def get_configuration(self, database_name: str) -> Optional[Dict]:
        """database_name이 일치하는 설정 문서 조회 (항상 최신 값)"""
        ...

    @abstractmethod
    def create_configuration(self, item: Dict) -> bool:
        """
        설정 문서 생성 (멱등성 보장).
        이미 존재하면 False 반환 (SQLite: INSERT OR IGNORE / DynamoDB: ConditionExpression)
        """
        ...

    @abstractmethod
    def replace_recipients(
        self,
        database_name: str,
        recipients: List[Dict],
        updated_at: str,
        expected_revision: int,
    ) -> Dict:
        """
        수신인 목록 전체 교체 + updated_at 갱신 + revision 증가.
        저장된 revision이 expected_revision과 다르면 RevisionConflict.
        """
        ...

    @abstractmethod
    def list_configurations(self) -> List[Dict]:
        """모든 설정 문서 조회"""
        ...
