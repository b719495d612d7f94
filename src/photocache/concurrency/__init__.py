"""Concurrency: bounded off-loop execution for decode and disk I/O."""

from photocache.concurrency.pool import DecodePool

__all__ = ["DecodePool"]
