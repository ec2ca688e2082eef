"""Durable task queue for backend operations."""

from .manager import DrainResult, TaskManager, TaskOutcome, TaskType
from .scheduler import TaskScheduler

__all__ = ["DrainResult", "TaskManager", "TaskOutcome", "TaskScheduler", "TaskType"]
