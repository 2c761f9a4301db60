"""
HOS 알림 수신인 관리 모듈
"""
from .errors import (
    ConcurrentModification,
    DuplicateRecipient,
    InvalidRecipient,
    RecipientStoreError,
    StoreUnavailable,
    TenantNotFound,
    TenantNotInitialized,
)
from .models import Recipient, TenantConfiguration
from .recipient_store import RecipientStore

__all__ = [
    "RecipientStore",
    "Recipient",
    "TenantConfiguration",
    "RecipientStoreError",
    "StoreUnavailable",
    "TenantNotFound",
    "TenantNotInitialized",
    "DuplicateRecipient",
    "InvalidRecipient",
    "ConcurrentModification",
]
