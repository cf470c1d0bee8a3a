"""Terminal host: config loading, event hub, facade, and REPL front end."""

from .config import AppConfig, load_app_config
from .events import EventHub, FrontendEvent
from .facade import TimerFacade

__all__ = ["AppConfig", "EventHub", "FrontendEvent", "TimerFacade", "load_app_config"]
