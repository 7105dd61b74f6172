from fairspin_be.adapters.mock_adapter import MockChainAdapter
from fairspin_be.adapters.voi_adapter import VoiChainAdapter

ADAPTERS = {
    'mock': MockChainAdapter,
    'voi': VoiChainAdapter,
}


def create_adapter(name, game_config, **kwargs):
    """Builds the chain adapter registered under ``name``."""
    try:
        adapter_class = ADAPTERS[name]
    except KeyError:
        raise ValueError(f"Unknown chain adapter '{name}'. Available: {', '.join(sorted(ADAPTERS))}")
    return adapter_class(game_config, **kwargs)


def create_adapter_from_config(config, game_config, **kwargs):
    """Builds the adapter named by ``CHAIN_ADAPTER`` in a Config object or Flask config mapping."""
    get = config.get if hasattr(config, 'get') else lambda key, default=None: getattr(config, key, default)
    name = get('CHAIN_ADAPTER', 'mock')
    if name == 'voi':
        kwargs.setdefault('node_url', get('CHAIN_NODE_URL'))
        kwargs.setdefault('indexer_url', get('CHAIN_INDEXER_URL'))
        kwargs.setdefault('api_token', get('CHAIN_API_TOKEN'))
        kwargs.setdefault('timeout', get('CHAIN_REQUEST_TIMEOUT', 10))
    return create_adapter(name, game_config, **kwargs)
