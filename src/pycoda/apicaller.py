import logging
import json as modjson
from typing import Any
from requests import (Request, PreparedRequest, Response,
                      Session, RequestException, JSONDecodeError)

from pycoda.cache import CacheStore
from pycoda.config import Configurator, apikey2output
from pycoda.exceptions import CodaApiMalformedResponse

logger = logging.getLogger(__name__)

Apiresult = Any #: the return type of all api call functions
READ_METHODS = ('GET',)

def _prepare_params(params: dict|None) -> dict|None:
    # Coda wants lowercase booleans, Requests would send "True"/"False"
    if not params:
        return params
    prepared = dict()
    for k, v in params.items():
        if v is None:
            continue
        if isinstance(v, bool):
            v = 'true' if v else 'false'
        prepared[k] = v
    return prepared

def error_body(status: int, reason: str, message: str) -> dict:
    """Compose an error response, shaped like the ones Coda returns."""
    return {'statusCode': status, 'statusMessage': reason, 'message': message}


class ApiCaller:
    """The engine for posting a call to the Coda Apis."""
    def __init__(self,
                 configurator: Configurator,
                 request_options: dict|None = None,
                 cache: CacheStore|None = None,
                 ) -> None:
        self.configurator = configurator
        if cache is None:
            cache = CacheStore(configurator.cache,
                               configurator.cache_max_age,
                               configurator.cache_dir)
        self.cache = cache            #: the response cache, owned by us
        self.session = None           #: Requests session object, or None
        self.request_options = dict() #: other options to pass to Requests
        if request_options:
            self.request_options = request_options
        self.apicalls: int = 0        #: total number of API calls
        self.cache_hits: int = 0      #: calls answered by the cache
        self.dry_run: bool = False    #: prepare, do not post request
        self.request: PreparedRequest|None = None #: last request posted
        self.response: Response|None = None       #: last response retrieved

    @property
    def ok(self) -> bool:
        """``False`` unless the last response carried a 2xx Http status.

        Also, if no response was retrieved, will be ``False`` by default.
        """
        try:
            return 200 <= self.response.status_code < 300 # type: ignore
        except AttributeError:
            # no response at all: a network failure, a dry run, or a
            # call answered by the cache (which stores successes only)
            return False

    def open_session(self) -> None:
        """Open a Requests sessions for all subsequent Api calls."""
        if self.session:
            self.session.close()
        self.session = Session()

    def close_session(self) -> None:
        """Close an open session, if any."""
        if self.session:
            self.session.close()
        self.session = None

    def response_as_json(self) -> str:
        """Return the response content as (unicode) parsable json."""
        if self.response is not None:
            resp = self.response.text or 'null'
            try:
                _ = modjson.loads(resp)
            except modjson.JSONDecodeError:
                resp = modjson.dumps(resp)
            return resp
        return 'null'

    def _wrap(self, status: int, body: Any, add_status: bool) -> Apiresult:
        if add_status:
            return {'statusCode': status, 'result': body}
        return body

    def apicall(self, url: str, method: str = 'GET', params: dict|None = None,
                json: dict|None = None, add_status: bool = False,
                cache: bool = True) -> Apiresult:
        """The engine responsible for actually calling the Apis.

        Return the json-decoded response content (usually a ``dict``).
        If ``add_status`` is set, return a
        ``{'statusCode': <http code>, 'result': <content>}`` dict instead.

        GET calls are answered from the cache when possible, unless
        ``cache`` is ``False``.

        Coda errors (any non-2xx Http status) are *not* raised: the error
        content is returned as it is, usually a
        ``{'statusCode': ..., 'statusMessage': ..., 'message': ...}`` dict.
        Network failures (any ``requests.RequestException``) are reported
        in the same way, with status code 0.
        Will throw ``CodaApiMalformedResponse`` if a successful response
        does not carry a json object or array.

        The ``ok`` property will be ``False`` if errors occurred.
        """
        self.request = None
        self.response = None
        params = _prepare_params(params)
        use_cache = (cache and method.upper() in READ_METHODS
                     and self.cache.enabled)
        signature = ''
        if use_cache:
            key = dict(params or {})
            if json is not None:
                key['__body__'] = json
            signature = self.cache.signature(url, key)
            entry = self.cache.lookup(signature)
            if entry is not None:
                logger.debug('Cache hit: %s %s', method, url)
                self.cache_hits += 1
                return self._wrap(entry.status, entry.body, add_status)
        headers = {'Content-Type': 'application/json',
                   'Accept': 'application/json',
                   'Authorization':
                   f'Bearer {self.configurator.config["CODA_API_KEY"]}'}
        # first, we prepare the request
        r = Request(method, url, headers=headers, params=params, json=json)
        session = self.session or Session()
        self.request = session.prepare_request(r)
        if self.dry_run: # let's assume a dry run equals to HTTPError...
            if session is not self.session:
                session.close()
            return error_body(418, "I'm a teapot",
                              'Pycoda teapot is running dry!')
        # then, we post the prepared request
        logger.debug('Api call: %s %s', self.request.method, self.request.url)
        try:
            self.response = session.send(self.request, **self.request_options)
        except RequestException as e:
            logger.warning('Api call failed: %s %s: %r', method, url, e)
            return error_body(0, e.__class__.__name__, str(e))
        finally:
            if session is not self.session:
                session.close()
        self.apicalls += 1
        status = self.response.status_code
        if not 200 <= status < 300:
            logger.debug('Api error: %s %s', status, self.response.reason)
            try:
                return self.response.json()
            except JSONDecodeError:
                return error_body(status, self.response.reason,
                                  self.response.text)
        try:
            body = self.response.json()
        except JSONDecodeError:
            body = None
        if not isinstance(body, (dict, list)):
            raise CodaApiMalformedResponse(
                f'Invalid json in response to {method} {url}',
                status, self.response.text)
        if use_cache:
            self.cache.store(signature, status, body)
        return self._wrap(status, body, add_status)

    def inspect(self, sep: str = '\n', max_content: int = 1000) -> str:
        """Collect info on the last api call that was requested (and possibly
        responded to) by the server.

        Use ``sep`` to set a custom separator between elements,
        and ``max_content`` to limit request/response body's content size.

        Intended for debug: add a ``print(self.inspect())`` right after the
        call to inspect. Works even if the server returned a "bad" status
        code. If server did not respond, only request data will be recorded.
        """
        cfg = '->Pycoda config.: '
        cfg += f'{self.configurator.config2output(self.configurator.config)}'
        req = self.request
        res = self.response
        if req is None:
            return f'->Req.: no request data{sep}{cfg}'
        txt = f'->Req. url: {req.url}{sep}'
        txt += f'->Req. method: {req.method}{sep}'
        headers = dict(req.headers)
        prot, key = headers['Authorization'].split()
        key = apikey2output(key)
        headers['Authorization'] = f'{prot} {key}'
        txt += f'->Req. headers: {headers}{sep}'
        txt += f'->Req. body: {str(req.body)[:max_content]}{sep}'
        if res is None:
            txt += f'->Resp.: no response data{sep}{cfg}'
            return txt
        txt += f'->Resp. url: {res.url}{sep}'
        txt += f'->Resp. result: {res.status_code} {res.reason}{sep}'
        txt += f'->Resp. headers: {res.headers}{sep}'
        txt += f'->Resp. content: {self.response_as_json()[:max_content]}{sep}'
        txt += cfg
        return txt
