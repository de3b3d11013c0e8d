"""
Config Loader - Caricamento configurazioni YAML e .env

Gestisce:
- Settings globali (config/settings.yaml)
- Variabili ambiente (config/.env, NO_COLOR, DEBUG)
- Configurazione della run derivata dalla CLI
- Validazione e default values
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class UIConfig:
    """Configurazione dashboard"""
    tick_rate: float = 0.1
    error_ttl: float = 8.0
    highlight_color: str = "#33467c"
    colors: bool = True


@dataclass
class PreviewConfig:
    """Configurazione anteprima sorgenti"""
    highlighter: str = "bat"


@dataclass
class LoggingConfig:
    """Configurazione logging"""
    level: str = "INFO"
    file: str = ""


@dataclass
class GlobalSettings:
    """Settings globali dell'applicazione"""
    ui: UIConfig = field(default_factory=UIConfig)
    preview: PreviewConfig = field(default_factory=PreviewConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


@dataclass
class RunConfig:
    """Configurazione della run, derivata dagli argomenti CLI"""
    test_command: List[str] = field(default_factory=list)
    build_command: Optional[List[str]] = None
    filter_text: Optional[str] = None
    preview: bool = False

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: combinazione di opzioni non valida
        """
        if not self.test_command:
            raise ConfigurationError("A test command is required")
        if self.build_command is not None and not any(self.build_command):
            raise ConfigurationError("The build command is empty")
        if self.preview and not self.filter_text:
            raise ConfigurationError("--preview requires --filter to locate the failing line")


class ConfigLoader:
    """
    Loader centralizzato per le configurazioni.

    Usage:
        loader = ConfigLoader(config_dir="/path/to/config")
        settings = loader.load_global_settings()
    """

    def __init__(self, config_dir: Optional[str] = None):
        """
        Inizializza il loader.

        Args:
            config_dir: Directory di configurazione. Se None, usa ./config
        """
        self.config_dir = Path(config_dir) if config_dir else Path.cwd() / "config"

        # Carica .env se esiste
        env_file = self.config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

    def load_global_settings(self) -> GlobalSettings:
        """Carica settings globali da settings.yaml"""
        settings_file = self.config_dir / "settings.yaml"
        settings = GlobalSettings()

        data = {}
        if settings_file.exists():
            try:
                with open(settings_file, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid settings file {settings_file}: {e}") from e
            logger.debug("Loaded settings from %s", settings_file)

        ui = data.get('ui', {}) or {}
        settings.ui.tick_rate = float(ui.get('tick_rate', settings.ui.tick_rate))
        settings.ui.error_ttl = float(ui.get('error_ttl', settings.ui.error_ttl))
        settings.ui.highlight_color = ui.get('highlight_color', settings.ui.highlight_color)
        settings.ui.colors = ui.get('colors', settings.ui.colors)

        preview = data.get('preview', {}) or {}
        settings.preview.highlighter = preview.get('highlighter', settings.preview.highlighter)

        logging_cfg = data.get('logging', {}) or {}
        settings.logging.level = str(logging_cfg.get('level', settings.logging.level)).upper()
        settings.logging.file = logging_cfg.get('file', settings.logging.file) or ""

        if os.environ.get('NO_COLOR'):
            settings.ui.colors = False
        if os.environ.get('DEBUG', '').lower() in ('1', 'true'):
            settings.logging.level = 'DEBUG'

        if settings.ui.tick_rate <= 0:
            raise ConfigurationError("ui.tick_rate must be positive")

        return settings
