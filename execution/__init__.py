"""
execution - Genesis Injection (batching and sequential dispatch)
"""

from .batcher import OperationBatcher
from .injector import Injector

__all__ = ['OperationBatcher', 'Injector']
