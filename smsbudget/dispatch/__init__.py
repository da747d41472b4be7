"""Command dispatch package."""

from smsbudget.dispatch.dispatcher import CommandDispatcher

__all__ = ["CommandDispatcher"]
