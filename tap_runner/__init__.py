"""
TAP Runner - Core Engine

Moduli disponibili:
- parsing: Lettura dello stream TAP in un documento annidato
- flattener: Numerazione e appiattimento dei risultati
- classifier: Pass / fail / skip
- query, location: Estrazione di file:riga dalle diagnostiche YAML con jq
- preview: Anteprima evidenziata del sorgente
- runner: Build, esecuzione test e stato della dashboard
- dashboard: Interfaccia live con Rich
- config_loader: Settings YAML e .env
"""

__version__ = "0.1.0"
__author__ = "TAP Runner Team"

from .classifier import Classification, classify
from .config_loader import ConfigLoader, GlobalSettings, RunConfig
from .flattener import flatten
from .location import Extraction, extract
from .parsing import parse
from .preview import SourcePreview, center
from .query import CompiledFilter
from .runner import RunOrchestrator, RunState, TransientError
from .widgets import ColoredList, StatefulList

__all__ = [
    # Core
    'flatten',
    'classify',
    'Classification',
    'extract',
    'Extraction',
    'parse',
    'center',
    # Components
    'CompiledFilter',
    'SourcePreview',
    'RunOrchestrator',
    'RunState',
    'TransientError',
    'ColoredList',
    'StatefulList',
    # Config
    'ConfigLoader',
    'GlobalSettings',
    'RunConfig',
]
