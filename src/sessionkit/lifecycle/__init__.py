"""Lifecycle-driven refresh: polling, lifecycle observer and task tracking."""

from .observer import LifecycleEvent, LifecycleManager
from .polling import SESSION_TOKEN_LIFETIME, SessionPollingManager
from .tasks import TaskCoordinator

__all__ = ['LifecycleEvent', 'LifecycleManager', 'SESSION_TOKEN_LIFETIME', 'SessionPollingManager', 'TaskCoordinator']
