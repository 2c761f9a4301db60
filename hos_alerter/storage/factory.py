"""
스토리지 백엔드 팩토리
환경에 따라 적절한 스토리지 백엔드를 선택하여 반환
"""

from typing import Optional

from .base import StorageBackend

_backend_instance: Optional[StorageBackend] = None


def get_storage_backend() -> StorageBackend:
    """환경에 따라 적절한 스토리지 백엔드 반환 (싱글톤)"""
    global _backend_instance
    if _backend_instance is not None:
        return _backend_instance

    from ..config import Config

    backend = Config.STORAGE_BACKEND
    if not backend:
        backend = "dynamodb" if Config.IS_LAMBDA else "sqlite"

    if backend == "dynamodb":
        from .dynamodb_backend import DynamoDBBackend

        _backend_instance = DynamoDBBackend()
    elif backend == "sqlite":
        from .sqlite_backend import SQLiteBackend

        _backend_instance = SQLiteBackend()
    else:
        raise ValueError(f"지원하지 않는 STORAGE_BACKEND: {backend}")

    return _backend_instance


def reset_storage_backend():
    """싱글톤 초기화 (테스트/설정 변경용)"""
    global _backend_instance
    _backend_instance = None
