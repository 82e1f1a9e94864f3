import yaml
from typing import Optional, Dict, Any

from ..exceptions import ConfigNotFoundError


def _load_yaml(yaml_file_path: str) -> Dict[str, Any]:
    try:
        with open(yaml_file_path, 'r') as file:
            config = yaml.safe_load(file)
    except FileNotFoundError:
        raise FileNotFoundError(f"YAML file not found at path: {yaml_file_path}")
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Error parsing YAML file: {e}")

    return config if isinstance(config, dict) else {}


def get_site_settings(yaml_file_path: str, site: Optional[str] = None) -> Dict[str, Any]:
    """
    Read a YAML configuration file and retrieve the settings of one CSM site.

    Args:
        yaml_file_path: Path to the YAML configuration file
        site: Site name; defaults to the file's 'default_site'

    Returns:
        Dict[str, Any]: The site settings with 'site' set to the resolved name

    Raises:
        ConfigNotFoundError: If the site or a required key is not found
        FileNotFoundError: If the YAML file cannot be found
        yaml.YAMLError: If the YAML file is malformed
    """
    config = _load_yaml(yaml_file_path)

    # Check if 'sites' exists
    if 'sites' not in config or not isinstance(config['sites'], dict):
        raise ConfigNotFoundError("'sites' key not found in configuration")

    site = site or config.get('default_site')
    if not site:
        raise ConfigNotFoundError(
            "No site given and no 'default_site' in configuration. "
            f"Available sites: {', '.join(config['sites'].keys())}"
        )

    # Check if site exists
    if site not in config['sites']:
        available_sites = list(config['sites'].keys())
        raise ConfigNotFoundError(
            f"Site '{site}' not found. Available sites: {', '.join(available_sites)}"
        )

    site_config = config['sites'][site]
    if not isinstance(site_config, dict) or 'base_url' not in site_config:
        raise ConfigNotFoundError(f"'base_url' not found for path sites.{site}")

    settings = dict(site_config)
    settings['site'] = site
    return settings
