"""Durable submission store."""

from agora.registry.submissions import SubmissionRegistry

__all__ = ["SubmissionRegistry"]
