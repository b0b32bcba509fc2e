"""Core discovery and execution functionality."""

from conventest.core.bus import Bus
from conventest.core.catalog import ModuleCatalog, TypeCatalog, TypeListCatalog
from conventest.core.convention import Convention, DefaultConvention
from conventest.core.discoverer import Discoverer
from conventest.core.lifecycle import (
    CreateInstancePerCase,
    CreateInstancePerClass,
    FixtureInjection,
    Lifecycle,
    NoInstance,
)
from conventest.core.listener import Listener
from conventest.core.model import Case, CaseStatus, ExecutionSummary, Test
from conventest.core.runner import Runner

__all__ = [
    "Bus",
    "Case",
    "CaseStatus",
    "Convention",
    "CreateInstancePerCase",
    "CreateInstancePerClass",
    "DefaultConvention",
    "Discoverer",
    "ExecutionSummary",
    "FixtureInjection",
    "Lifecycle",
    "Listener",
    "ModuleCatalog",
    "NoInstance",
    "Runner",
    "Test",
    "TypeCatalog",
    "TypeListCatalog",
]
