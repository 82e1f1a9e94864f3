"""
Configuration utilities for loading site settings into a CSMConfig.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from ..exceptions import ConfigNotFoundError
from ..models import CSMConfig
from .yamler import get_site_settings

console = Console()

DEFAULT_CONFIG_FILE = Path.home() / ".config" / "csm-node" / "config.yaml"

# Environment overrides, read once at start-up and folded into CSMConfig.
TOKEN_ENV = "CSM_TOKEN"
PROXY_ENV = "CSM_SOCKS5_PROXY"


def _read_token(settings: Dict[str, Any], environ: Mapping[str, str]) -> str:
    token = environ.get(TOKEN_ENV)
    if token:
        return token.strip()

    token_file = settings.get("token_file")
    if not token_file:
        raise ConfigNotFoundError(
            f"No API token: set {TOKEN_ENV} or 'token_file' for site '{settings['site']}'"
        )
    return Path(token_file).expanduser().read_text(encoding="utf-8").strip()


def build_csm_config(
    config_file: str, site: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> CSMConfig:
    """
    Build the connection settings for a site.

    Raises:
        ConfigNotFoundError: If the site, its base URL or the token is missing
        FileNotFoundError: If the configuration or token file does not exist
        yaml.YAMLError: If the YAML file is malformed
        pydantic.ValidationError: If a setting has the wrong type
    """
    environ = os.environ if environ is None else environ
    settings = get_site_settings(yaml_file_path=config_file, site=site)

    return CSMConfig(
        site=settings["site"],
        base_url=settings["base_url"],
        token=_read_token(settings, environ),
        root_cert=settings.get("root_cert"),
        socks5_proxy=environ.get(PROXY_ENV) or settings.get("socks5_proxy"),
        timeout=settings.get("timeout"),
        power_poll_seconds=settings.get("power_poll_seconds", 5.0),
        power_off_timeout=settings.get("power_off_timeout"),
    )


def load_csm_config(
    config_file: Optional[str] = None,
    site: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> CSMConfig:
    """
    Load the site configuration for the CLI.

    Args:
        config_file: Path to the YAML configuration file
        site: Site name; defaults to the file's default_site
        environ: Environment to read overrides from (defaults to os.environ)

    Returns:
        CSMConfig: Validated connection settings

    Exits:
        System exit on configuration errors
    """
    config_file = config_file or str(DEFAULT_CONFIG_FILE)
    try:
        return build_csm_config(config_file, site=site, environ=environ)

    except ConfigNotFoundError as e:
        console.print(f"[red]Configuration Error: {e}[/red]")
        sys.exit(1)
    except FileNotFoundError as e:
        console.print(f"[red]File Error: {e}[/red]")
        console.print(f"[yellow]Make sure the configuration file exists at: {config_file}[/yellow]")
        sys.exit(1)
    except (yaml.YAMLError, PydanticValidationError) as e:
        console.print(f"[red]Invalid configuration in {config_file}: {e}[/red]")
        sys.exit(1)
