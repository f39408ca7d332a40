"""
Client workflow engine for field operations - stage movement rules, audit trail and aggregates.
"""

# Package initialization
from .core.engine import WorkflowEngine
from .core.errors import WorkflowError, NotFound, StateMismatch, ConfigurationError, SimulationDisabled
from .core.rules import RuleTable, build_default_table
from .core.schema import ActingUser, ClientRecord, MovementRule, TransitionResult

__all__ = [
    'WorkflowEngine',
    'WorkflowError',
    'NotFound',
    'StateMismatch',
    'ConfigurationError',
    'SimulationDisabled',
    'RuleTable',
    'build_default_table',
    'ActingUser',
    'ClientRecord',
    'MovementRule',
    'TransitionResult',
]
