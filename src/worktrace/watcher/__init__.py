"""Filesystem activity watching."""

from .rules import RulesLoadError, WatchRules, load_rules
from .watcher import ActivityWatcher, WatcherNotification

__all__ = ["ActivityWatcher", "RulesLoadError", "WatchRules", "WatcherNotification", "load_rules"]
