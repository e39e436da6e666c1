import os
from typing import Dict

from dotenv import dotenv_values

from .env import Env, PrimaryType


def load_env(
    default: type[Env] = Env,
    env_file: str | None = ".env",
    override: Dict[str, PrimaryType] | None = None,
) -> Env:
    """
    Build settings from, in increasing precedence, the field defaults,
    the process environment, ``env_file`` and ``override``.
    """
    envars = default.types_map()

    values: Dict[str, PrimaryType] = {
        name: convert(os.environ[name])
        for name, convert in envars.items()
        if os.environ.get(name)
    }

    if env_file and os.path.exists(env_file):
        for name, value in dotenv_values(dotenv_path=env_file).items():
            convert = envars.get(name)
            if convert and value is not None:
                values[name] = convert(value)

    if override:
        values.update(override)

    return default(**values)
