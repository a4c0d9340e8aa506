"""
HTTP layer: client, OpenAPI helpers, versions, tasks and generic CRUD
"""

from .client import Client
from .generic import CrudConfig, OuterEntity
from .task import Task, TaskStatus

__all__ = [
    'Client',
    'CrudConfig',
    'OuterEntity',
    'Task',
    'TaskStatus',
]
