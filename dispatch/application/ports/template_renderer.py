"""Port interface for turning a notification into subject and bodies."""

from __future__ import annotations

from abc import ABC, abstractmethod

from dispatch.domain.entities.notification import NotificationData, RenderedMessage
from dispatch.domain.value_objects.enums import Locale, NotificationTemplate


class TemplateRenderer(ABC):
    @abstractmethod
    def render(
        self,
        template: NotificationTemplate,
        data: NotificationData,
        locale: Locale | None,
    ) -> RenderedMessage:
        """Render *template* in *locale*; ``None`` renders every supported locale together."""
        ...
