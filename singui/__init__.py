"""Sing-box panel core: share links, client configs, subscriptions, settings, users and keys."""

__version__ = "0.1.0"