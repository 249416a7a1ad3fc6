import json
import os

import yaml

PATH_KEYS = ("price_csv", "price_json")


def load_config(path: str) -> dict:
    """
    Load a simulation config document (YAML or JSON) into a dictionary.

    Relative price-file paths in the ``oracle`` section are resolved against
    the directory of the config file, so a config can travel with its data.

    Parameters
    ----------
    path : str
        The path to the configuration file (``.yaml``, ``.yml`` or ``.json``).

    Returns
    -------
    dict
        Parsed configuration with ``simulation``, ``oracle`` and ``strategy`` sections.

    Raises
    ------
    FileNotFoundError
        If the file does not exist at the given path.

    ValueError
        If the extension is unsupported or the root object is not a mapping.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    _, ext = os.path.splitext(path.lower())

    if ext in (".yaml", ".yml"):
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    elif ext == ".json":
        with open(path, "r") as f:
            data = json.load(f)
    else:
        raise ValueError("Unsupported config extension. Use .yaml, .yml, or .json.")

    if not isinstance(data, dict):
        raise ValueError("Config file root must be a dictionary.")
    return resolve_paths(data, os.path.dirname(os.path.abspath(path)))


def resolve_paths(config: dict, base_dir: str) -> dict:
    """Make relative oracle price paths absolute with respect to ``base_dir``."""
    oracle_cfg = config.get("oracle") or {}
    for key in PATH_KEYS:
        value = oracle_cfg.get(key)
        if value and not os.path.isabs(value):
            oracle_cfg[key] = os.path.join(base_dir, value)
    return config
