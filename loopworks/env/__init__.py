from .env import Env as Env, UnitType as UnitType
from .load_env import load_env as load_env
from .time_parser import TimeParser as TimeParser
