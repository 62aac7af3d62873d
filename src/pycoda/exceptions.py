"""
Pycoda exception hierarchy. 
---------------------------

Exceptions listed here can be raised by Pycoda, and they concern 
its internal functioning. Note that errors reported by the Coda API itself 
(eg. a 404 for a missing table, or a 400 for bad row data) are *not* 
raised: they are returned as the json error body, just like any other 
response. The same goes for network failures, see ``ApiCaller.apicall``.
"""

class CodaApiException(Exception): 
    """The base CodaApi exception."""
    pass

class CodaApiNotConfigured(CodaApiException): 
    """A configuration error occurred."""
    pass

class CodaApiInSafeMode(CodaApiException): 
    """Pycoda is in safe mode, no writing to the doc is possible."""
    pass

class CodaApiMalformedResponse(CodaApiException): 
    """The Api returned a success status code, but not a json object/array."""
    def __init__(self, msg: str, status: int = 0, content: str = ''):
        super().__init__(msg)
        self.status = status
        self.content = content
