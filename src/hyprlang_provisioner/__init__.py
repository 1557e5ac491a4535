"""Hyprlang editor extension: language server acquisition and grammar provisioning."""

from .extension import HyprlangExtension

__all__ = ["HyprlangExtension"]
