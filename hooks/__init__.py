"""User-defined lifecycle hooks."""

from .gate import HookGate, HookPoint

__all__ = ["HookGate", "HookPoint"]
