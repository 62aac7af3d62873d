import os, os.path
import json as modjson
from pprint import pformat

from pycoda.exceptions import CodaApiNotConfigured

# This is the default Pycoda configuration.
# Use only non-empty strings as config values.

PYCODA_CONFIG = {
    'CODA_API_KEY': '<your_api_key_here>',
    'CODA_API_SERVER': 'https://coda.io',
    'CODA_API_ROOT': 'apis/v1',
    'CODA_DOC_ID': '<your_doc_id_here>',
    'CODA_SAFEMODE': 'N',
    'CODA_CACHE': 'N',
    'CODA_CACHE_MAX_AGE': '600', # seconds, this should be castable to int
    'CODA_CACHE_DIR': '.codacache',
}

def apikey2output(apikey: str) -> str:
    """Obfuscate the secret Coda API key for output printing."""
    klen = len(apikey)
    return apikey if klen < 5 else f'{apikey[:2]}<{klen-4}>{apikey[-2:]}'


class Configurator:
    """Hold the Pycoda configuration for the lifetime of a client.

    The configuration is read once, when the configurator is created:
    api key and cache settings are not supposed to change afterwards.
    To work with a different configuration, create a new client.
    """
    def __init__(self, config: dict[str, str]|None = None):
        self.config = self.get_config()  # the actual, current configuration
        if config is not None:
            self.config.update(config)
        self.server = ''         # the api server url, up to the api root
        self.safemode = False    # read-only mode
        self.cache = False       # if caching was requested
        self.cache_max_age = 0   # cache entries max age, in seconds
        self.cache_dir = ''      # where the cache files are stored
        self._post_config()

    @staticmethod
    def get_config() -> dict[str, str]:
        """Return the Pycoda global configuration dictionary.

        This is the "static" configuration setup, not counting anything
        you may pass to the client at runtime.
        Config keys are first searched in ``config.py``, then in
        ``~/.codaapi/config.json``, and finally in matching env variables.
        See ``config.py`` for a list of the config keys currently in use.
        """
        config = dict(PYCODA_CONFIG)
        pth = os.path.join(os.path.expanduser('~'), '.codaapi/config.json')
        if os.path.isfile(pth):
            with open(pth, 'r') as f:
                config.update(modjson.loads(f.read()))
        for k in config.keys():
            try:
                config[k] = os.environ[k]
            except KeyError:
                pass
        return config

    @staticmethod
    def config2output(config: dict[str, str], multiline: bool = False) -> str:
        """Format the Pycoda configuration as a string for output printing."""
        if not config:
            return '{<empty>}'
        cfcopy = dict(config)
        cfcopy['CODA_API_KEY'] = apikey2output(cfcopy.get('CODA_API_KEY', ''))
        return pformat(cfcopy) if multiline else str(cfcopy)

    def _post_config(self): # check and cleanup after config is loaded
        if not self.config or not all(self.config.values()):
            msg = f'Missing config values.\n{self.config2output(self.config)}'
            raise CodaApiNotConfigured(msg)
        max_age = self.config['CODA_CACHE_MAX_AGE']
        try:
            self.cache_max_age = int(max_age)
        except ValueError:
            msg = f'Cache max age must be castable to integer, not "{max_age}".'
            raise CodaApiNotConfigured(msg)
        self.server = self.make_server()
        self.safemode = (self.config['CODA_SAFEMODE'] == 'Y')
        self.cache = (self.config['CODA_CACHE'] == 'Y')
        self.cache_dir = self.config['CODA_CACHE_DIR']

    def make_server(self) -> str:
        """Construct the "server" part of the API url, up to "/apis/v1"."""
        cf = self.config
        server = cf['CODA_API_SERVER'].rstrip('/')
        root = cf['CODA_API_ROOT'].strip('/')
        return f'{server}/{root}'

    def select_doc(self, doc_id: str = '') -> str:
        return doc_id or self.config['CODA_DOC_ID']
