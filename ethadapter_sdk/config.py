"""
Network configuration for the ethadapter SDK.
"""
import json
import logging
import os
from importlib import resources
from typing import Any, Dict, Optional

from .exceptions import NetworkError

logger = logging.getLogger(__name__)


class NetworkConfig:
    """
    Named network table shipped with the package.

    RPC URLs can be overridden per call or through a ``<NETWORK>_RPC_URL``
    environment variable (dashes become underscores, e.g. ``SEPOLIA_RPC_URL``).
    """

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load the network table.

        Returns:
            Mapping of network name to its configuration

        Raises:
            NetworkError: If the packaged table cannot be read
        """
        if cls._networks_cache is not None:
            return cls._networks_cache

        try:
            text = resources.files("ethadapter_sdk").joinpath("networks.json").read_text(encoding="utf-8")
            cls._networks_cache = json.loads(text)
        except (OSError, ValueError) as e:
            raise NetworkError(f"Failed to load network configuration: {e}") from e

        logger.debug(f"Loaded {len(cls._networks_cache)} networks")
        return cls._networks_cache

    @classmethod
    def get_network(cls, network: str) -> Dict[str, Any]:
        """
        Get configuration for a named network.

        Raises:
            NetworkError: If the network is not in the table
        """
        networks = cls.load_networks()
        if network not in networks:
            available = ", ".join(sorted(networks))
            raise NetworkError(f"Unknown network '{network}'. Available networks: {available}")
        return networks[network]

    @classmethod
    def get_rpc_url(cls, network: str, override: Optional[str] = None) -> str:
        """
        Resolve the RPC URL for a network.

        Precedence: ``override``, then the environment variable, then the table.
        """
        if override:
            return override

        env_var = f"{network.upper().replace('-', '_')}_RPC_URL"
        env_url = os.environ.get(env_var)
        if env_url:
            logger.debug(f"Using RPC URL from {env_var}")
            return env_url

        return cls.get_network(network)["rpc"]

    @classmethod
    def get_chain_id(cls, network: str) -> int:
        return int(cls.get_network(network)["chainId"])
