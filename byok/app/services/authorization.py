# byok/app/services/authorization.py
"""
Provider allow-list checks.

A provider is usable when the administrator has it switched on
(ENABLED_PROVIDERS) AND it appears in the user's own allow-list.
"""
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from byok.app.core.config import settings
from byok.app.schemas.user import CurrentUser


class ProviderAuthorizer(ABC):

    @abstractmethod
    def is_provider_allowed(self, user: Optional[CurrentUser], provider_id) -> bool:
        ...


class AllowListAuthorizer(ProviderAuthorizer):

    def __init__(self, enabled_providers: Optional[Iterable[str]] = None):
        if enabled_providers is None:
            enabled_providers = settings.enabled_providers
        self._enabled = {str(getattr(p, "value", p)) for p in enabled_providers}

    def is_provider_allowed(self, user: Optional[CurrentUser], provider_id) -> bool:
        if user is None:
            return False
        provider = str(getattr(provider_id, "value", provider_id))
        return provider in self._enabled and provider in user.allowed_providers
