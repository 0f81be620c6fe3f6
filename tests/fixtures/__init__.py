from .chain import (
    AGENT,
    ISSUER,
    OTHER_AGENT,
    FakeChain,
    bull_post,
    chain,
    contracts,
    registered_agent,
    sdk,
)
from .config import (
    set_config,
    set_dotenv,
    set_env,
    set_local_yaml,
    set_pyproject,
    tmp_cwd,
)
from .queue import LoopbackChannel, loopback_channel

__all__ = [
    "AGENT",
    "ISSUER",
    "OTHER_AGENT",
    "FakeChain",
    "LoopbackChannel",
    "bull_post",
    "chain",
    "contracts",
    "loopback_channel",
    "registered_agent",
    "sdk",
    "set_config",
    "set_dotenv",
    "set_env",
    "set_local_yaml",
    "set_pyproject",
    "tmp_cwd",
]
