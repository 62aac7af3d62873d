"""
Pycoda: a Python client for the Coda API.
=========================================

`Coda <https://coda.io/>`_ is a doc-as-an-app platform, mixing text,
tables, formulas and controls in a single document. The Coda API allows
you to programmatically retrieve/update your data stored on Coda, and
inspect most of the basic Coda objects, such as docs, pages, tables,
permissions and so on.

Pycoda is a basic Coda client, wrapping all the documented APIs.
Pycoda keeps track of some configuration for you, remembering your
working document, so that you don't have to type in the boring stuff
every time. Apart from that and little else, Pycoda is rather low-level:
it will call the api and retrieve the json response "as is". If the api
call is malformed, you will simply receive the Coda error response,
something like ``{'statusCode': 404, 'statusMessage': 'Not Found',
'message': '...'}``: no exception is raised for Api errors.

Pycoda may also cache the responses of read-only calls in a local
directory, see the ``CODA_CACHE*`` configuration keys.

Basic usage goes as follows::

    from pycoda.api import CodaApi

    coda = CodaApi()
    # list tables in the current document
    response = coda.list_tables()
    # fetch the rows where column "Name" is "Bob"
    response = coda.list_rows('People', query={'Name': 'Bob'})
    # add two rows to a table
    ok = coda.insert_rows('People', [{'Name': 'Alice', 'Age': 33},
                                     {'Name': 'Carl', 'Age': 51}])

The api call functions themselves are not documented in detail in Pycoda:
see the `Coda API reference documentation <https://coda.io/developers/apis/v1>`_
for details about each api signature and the optional query parameters
you may pass with ``params``.
"""
from __future__ import annotations

import re
import functools
from urllib.parse import quote_plus

from pycoda.config import Configurator
from pycoda.apicaller import ApiCaller, Apiresult
from pycoda.exceptions import CodaApiInSafeMode
from pycoda import rows as modrows

DOC_ID_RE = re.compile(r'coda\.io/d/.*?_d(.{10})/')

def prepare_string(string: str) -> str:
    """Prepare an id or a name to be used as an url path segment.

    Usual url-encoding would turn spaces into "+", but Coda will only
    read a space as a space or as "%20".
    """
    return '%20'.join(quote_plus(part) for part in string.split(' '))

def get_doc_id(url: str) -> str|None:
    """Extract the 10-characters doc id from a Coda doc url.

    Return ``None`` if no doc id can be found.
    """
    match = DOC_ID_RE.search(url)
    return match.group(1) if match else None


def check_safemode(funct):
    """If Pycoda is in safemode, no writing API call will pass through."""
    @functools.wraps(funct)
    def wrapper(self, *a, **k):
        if self.configurator.safemode:
            msg = 'CodaApi is in safe mode: you cannot write to doc. '
            cf = self.configurator
            msg += f'Configuration:\n{cf.config2output(cf.config, True)}'
            raise CodaApiInSafeMode(msg)
        return funct(self, *a, **k)
    return wrapper


class CodaApi:
    def __init__(self, config: dict[str, str]|None = None,
                 custom_configurator: Configurator|None = None,
                 custom_apicaller: ApiCaller|None = None,
                 request_options: dict|None = None):
        if custom_apicaller is not None:
            self.apicaller = custom_apicaller
            self.configurator = custom_apicaller.configurator
        else:
            self.configurator = custom_configurator or Configurator(config)
            self.apicaller = ApiCaller(self.configurator, request_options)

    @property
    def server(self) -> str:
        return self.configurator.server

    @property
    def ok(self) -> bool:
        """``False`` if the last api call went wrong."""
        return self.apicaller.ok

    @property
    def apicalls(self) -> int:
        """Total number of api calls posted (cache hits not included)."""
        return self.apicaller.apicalls

    def _doc_url(self, doc_id: str) -> str:
        doc = self.configurator.select_doc(doc_id)
        return f'{self.server}/docs/{prepare_string(doc)}'

    def open_session(self) -> None:
        self.apicaller.open_session()

    def close_session(self) -> None:
        self.apicaller.close_session()

    def inspect(self) -> str:
        """Collect useful info about the last api call that was sent.

        Intended for debug: add a ``print(self.inspect())`` after
        something went wrong.
        """
        return self.apicaller.inspect()

    def clear_cache(self) -> int:
        """Delete all cached responses, return the number of deleted entries."""
        return self.apicaller.cache.clear()

    get_doc_id = staticmethod(get_doc_id)

    # ACCOUNT AND MISCELLANEOUS
    # ------------------------------------------------------------------

    def whoami(self) -> Apiresult:
        """Implement GET ``/whoami``.

        If successful, response will be a ``dict`` of user details.
        """
        url = f'{self.server}/whoami'
        return self.apicaller.apicall(url, cache=False)

    def resolve_link(self, link: str, degrade: bool = False) -> Apiresult:
        """Implement GET ``/resolveBrowserLink``.

        If successful, response will be a ``dict`` describing the resource
        the browser link points to.
        """
        url = f'{self.server}/resolveBrowserLink'
        params = {'url': link, 'degradeGracefully': degrade}
        return self.apicaller.apicall(url, params=params)

    def see_mutation_status(self, request_id: str) -> Apiresult:
        """Implement GET ``/mutationStatus/{requestId}``.

        If successful, response will be a ``dict`` like ``{'completed': True}``.
        """
        url = f'{self.server}/mutationStatus/{prepare_string(request_id)}'
        return self.apicaller.apicall(url, cache=False)

    # DOCS
    # ------------------------------------------------------------------

    def list_docs(self, params: dict|None = None) -> Apiresult:
        """Implement GET ``/docs``.

        If successful, response will be a ``dict`` with the docs in ``items``.
        """
        url = f'{self.server}/docs'
        return self.apicaller.apicall(url, params=params)

    def see_doc(self, doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}``.

        If successful, response will be a ``dict`` of doc details.
        """
        return self.apicaller.apicall(self._doc_url(doc_id))

    @check_safemode
    def add_doc(self, title: str = '', source_doc: str = '',
                timezone: str = '', folder_id: str = '') -> Apiresult:
        """Implement POST ``/docs``.

        Pass ``source_doc`` to make a copy of an existing doc.
        If successful, response will be a ``dict`` of the new doc details.
        """
        url = f'{self.server}/docs'
        json = {'title': title}
        if source_doc:
            json['sourceDoc'] = source_doc
        if timezone:
            json['timezone'] = timezone
        if folder_id:
            json['folderId'] = folder_id
        return self.apicaller.apicall(url, 'POST', json=json)

    @check_safemode
    def update_doc(self, title: str = '', icon_name: str = '',
                   doc_id: str = '') -> Apiresult:
        """Implement PATCH ``/docs/{docId}``.

        If successful, response will be an empty ``dict``.
        """
        json = dict()
        if title:
            json['title'] = title
        if icon_name:
            json['iconName'] = icon_name
        return self.apicaller.apicall(self._doc_url(doc_id), 'PATCH', json=json)

    @check_safemode
    def delete_doc(self, doc_id: str) -> Apiresult:
        """Implement DELETE ``/docs/{docId}``.

        If successful, response will be an empty ``dict``.
        """
        # it's safer to ask for a doc id here
        return self.apicaller.apicall(self._doc_url(doc_id), 'DELETE')

    # PAGES
    # ------------------------------------------------------------------

    def list_pages(self, params: dict|None = None,
                   doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/pages``."""
        url = f'{self._doc_url(doc_id)}/pages'
        return self.apicaller.apicall(url, params=params)

    def see_page(self, page: str, doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/pages/{pageIdOrName}``."""
        url = f'{self._doc_url(doc_id)}/pages/{prepare_string(page)}'
        return self.apicaller.apicall(url)

    @check_safemode
    def update_page(self, page: str, fields: dict,
                    doc_id: str = '') -> Apiresult:
        """Implement PUT ``/docs/{docId}/pages/{pageIdOrName}``.

        ``fields``: the page properties to update, eg. ``{'name': 'New'}``.
        If successful, response will be a ``dict`` with the mutation
        ``requestId``.
        """
        url = f'{self._doc_url(doc_id)}/pages/{prepare_string(page)}'
        return self.apicaller.apicall(url, 'PUT', json=fields)

    def export_page(self, page: str, output_format: str = 'html',
                    doc_id: str = '') -> Apiresult:
        """Implement POST ``/docs/{docId}/pages/{pageIdOrName}/export``.

        ``output_format``: either "html" or "markdown".
        If successful, response will be a ``dict`` with the export ``id``.
        """
        url = f'{self._doc_url(doc_id)}/pages/{prepare_string(page)}/export'
        json = {'outputFormat': output_format}
        return self.apicaller.apicall(url, 'POST', json=json)

    def see_page_export(self, page: str, request_id: str,
                        doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/pages/{pageIdOrName}/export/{requestId}``.

        If successful, response will be a ``dict`` with the export status,
        and the ``downloadLink`` when the export is done.
        """
        url = (f'{self._doc_url(doc_id)}/pages/{prepare_string(page)}'
               f'/export/{prepare_string(request_id)}')
        return self.apicaller.apicall(url, cache=False)

    # TABLES AND COLUMNS
    # ------------------------------------------------------------------

    def list_tables(self, params: dict|None = None,
                    doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/tables``."""
        url = f'{self._doc_url(doc_id)}/tables'
        return self.apicaller.apicall(url, params=params)

    def see_table(self, table: str, doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/tables/{tableIdOrName}``."""
        url = f'{self._doc_url(doc_id)}/tables/{prepare_string(table)}'
        return self.apicaller.apicall(url)

    def list_cols(self, table: str, params: dict|None = None,
                  doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/tables/{tableIdOrName}/columns``."""
        url = f'{self._doc_url(doc_id)}/tables/{prepare_string(table)}/columns'
        return self.apicaller.apicall(url, params=params)

    def see_col(self, table: str, col: str, doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/tables/{tableIdOrName}/columns/{columnIdOrName}``."""
        url = (f'{self._doc_url(doc_id)}/tables/{prepare_string(table)}'
               f'/columns/{prepare_string(col)}')
        return self.apicaller.apicall(url)

    # ROWS
    # ------------------------------------------------------------------

    def _rows_url(self, table: str, doc_id: str) -> str:
        return f'{self._doc_url(doc_id)}/tables/{prepare_string(table)}/rows'

    def list_rows(self, table: str, query: dict|str|None = None,
                  params: dict|None = None, doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/tables/{tableIdOrName}/rows``.

        ``query``: a ``{column: value}`` filter, or a string already in
        the ``column:"value"`` Coda format.
        Note: ``useColumnNames`` is ``True`` by default, pass it in
        ``params`` to change this.
        """
        params = dict(params or {})
        params.setdefault('useColumnNames', True)
        if query:
            params['query'] = modrows.make_query_param(query)
        return self.apicaller.apicall(self._rows_url(table, doc_id),
                                      params=params)

    def see_row(self, table: str, row: str, params: dict|None = None,
                doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/tables/{tableIdOrName}/rows/{rowIdOrName}``.

        Note: ``useColumnNames`` is ``True`` by default.
        """
        params = dict(params or {})
        params.setdefault('useColumnNames', True)
        url = f'{self._rows_url(table, doc_id)}/{prepare_string(row)}'
        return self.apicaller.apicall(url, params=params)

    @check_safemode
    def insert_rows(self, table: str, row_data: modrows.RowData,
                    key_columns: list[str]|None = None,
                    disable_parsing: bool = False,
                    doc_id: str = '') -> Apiresult:
        """Implement POST ``/docs/{docId}/tables/{tableIdOrName}/rows``.

        ``row_data``: a single row (``{column: value}``) or a list of rows.
        ``key_columns``: columns to match for updating existing rows
        instead of inserting new ones (upsert).
        Coda processes the insert asynchronously: if the insert was
        accepted (Http 202), response will be ``True``; otherwise, a
        ``{'statusCode': ..., 'result': ...}`` dict, or the error response.
        """
        json = modrows.make_insert_payload(row_data, key_columns,
                                           disable_parsing)
        res = self.apicaller.apicall(self._rows_url(table, doc_id), 'POST',
                                     json=json, add_status=True)
        if isinstance(res, dict) and res.get('statusCode') == 202:
            return True
        return res

    @check_safemode
    def update_row(self, table: str, row: str, row_data: modrows.Row,
                   disable_parsing: bool = False,
                   doc_id: str = '') -> Apiresult:
        """Implement PUT ``/docs/{docId}/tables/{tableIdOrName}/rows/{rowIdOrName}``.

        If successful, response will be a ``dict`` with the updated row ``id``.
        """
        json = modrows.make_update_payload(row_data)
        params = {'disableParsing': disable_parsing}
        url = f'{self._rows_url(table, doc_id)}/{prepare_string(row)}'
        return self.apicaller.apicall(url, 'PUT', params=params, json=json)

    @check_safemode
    def delete_row(self, table: str, row: str, doc_id: str = '') -> Apiresult:
        """Implement DELETE ``/docs/{docId}/tables/{tableIdOrName}/rows/{rowIdOrName}``.

        If successful, response will be a ``dict`` with the deleted row ``id``.
        """
        url = f'{self._rows_url(table, doc_id)}/{prepare_string(row)}'
        return self.apicaller.apicall(url, 'DELETE')

    @check_safemode
    def delete_rows(self, table: str, row_ids: list[str],
                    doc_id: str = '') -> Apiresult:
        """Implement DELETE ``/docs/{docId}/tables/{tableIdOrName}/rows``.

        If successful, response will be a ``dict`` with the deleted ``rowIds``.
        """
        json = {'rowIds': list(row_ids)}
        return self.apicaller.apicall(self._rows_url(table, doc_id), 'DELETE',
                                      json=json)

    @check_safemode
    def push_button(self, table: str, row: str, col: str,
                    doc_id: str = '') -> Apiresult:
        """Implement POST ``/docs/{docId}/tables/{tableIdOrName}/rows/{rowIdOrName}/buttons/{columnIdOrName}``."""
        url = (f'{self._rows_url(table, doc_id)}/{prepare_string(row)}'
               f'/buttons/{prepare_string(col)}')
        return self.apicaller.apicall(url, 'POST')

    # FORMULAS AND CONTROLS
    # ------------------------------------------------------------------

    def list_formulas(self, params: dict|None = None,
                      doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/formulas``."""
        url = f'{self._doc_url(doc_id)}/formulas'
        return self.apicaller.apicall(url, params=params)

    def see_formula(self, formula: str, doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/formulas/{formulaIdOrName}``."""
        url = f'{self._doc_url(doc_id)}/formulas/{prepare_string(formula)}'
        return self.apicaller.apicall(url)

    def list_controls(self, params: dict|None = None,
                      doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/controls``."""
        url = f'{self._doc_url(doc_id)}/controls'
        return self.apicaller.apicall(url, params=params)

    def see_control(self, control: str, doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/controls/{controlIdOrName}``."""
        url = f'{self._doc_url(doc_id)}/controls/{prepare_string(control)}'
        return self.apicaller.apicall(url)

    # PERMISSIONS
    # ------------------------------------------------------------------

    def see_sharing_metadata(self, doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/acl/metadata``."""
        url = f'{self._doc_url(doc_id)}/acl/metadata'
        return self.apicaller.apicall(url)

    def list_permissions(self, params: dict|None = None,
                         doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/acl/permissions``.

        This call is never cached, since permissions are often listed
        right before changing them.
        """
        url = f'{self._doc_url(doc_id)}/acl/permissions'
        return self.apicaller.apicall(url, params=params, cache=False)

    @check_safemode
    def add_permission(self, access: str, principal: dict,
                       suppress_email: bool = False,
                       doc_id: str = '') -> Apiresult:
        """Implement POST ``/docs/{docId}/acl/permissions``.

        ``access``: one of "readonly", "write", "comment", "none".
        ``principal``: eg. ``{'type': 'email', 'email': 'bob@example.com'}``.
        If successful, response will be an empty ``dict``.
        """
        url = f'{self._doc_url(doc_id)}/acl/permissions'
        json = {'access': access, 'principal': principal,
                'suppressEmail': suppress_email}
        return self.apicaller.apicall(url, 'POST', json=json)

    @check_safemode
    def delete_permission(self, permission_id: str,
                          doc_id: str = '') -> Apiresult:
        """Implement DELETE ``/docs/{docId}/acl/permissions/{permissionId}``.

        If successful, response will be an empty ``dict``.
        """
        url = (f'{self._doc_url(doc_id)}/acl/permissions/'
               f'{prepare_string(permission_id)}')
        return self.apicaller.apicall(url, 'DELETE')

    def add_user(self, email: str, access: str = 'readonly',
                 suppress_email: bool = False, doc_id: str = '') -> Apiresult:
        """Share the doc with a user, identified by email.

        A shortcut for ``add_permission``.
        """
        principal = {'type': 'email', 'email': email}
        return self.add_permission(access, principal, suppress_email, doc_id)

    def delete_user(self, email: str, doc_id: str = '') -> Apiresult:
        """Stop sharing the doc with a user, identified by email.

        Will list the doc permissions first, then delete the permission
        granted to the user. Return ``False`` if no permission was found
        for this email, and the error response if the listing failed.
        """
        res = self.list_permissions(doc_id=doc_id)
        try:
            permissions = res['items']
        except (KeyError, TypeError):
            return res
        for perm in permissions:
            if perm.get('principal', {}).get('email') == email:
                return self.delete_permission(perm['id'], doc_id)
        return False

    def search_principals(self, query: str = '',
                          doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/acl/principals/search``."""
        url = f'{self._doc_url(doc_id)}/acl/principals/search'
        params = {'query': query} if query else None
        return self.apicaller.apicall(url, params=params)

    def see_acl_settings(self, doc_id: str = '') -> Apiresult:
        """Implement GET ``/docs/{docId}/acl/settings``."""
        url = f'{self._doc_url(doc_id)}/acl/settings'
        return self.apicaller.apicall(url)

    @check_safemode
    def update_acl_settings(self, settings: dict,
                            doc_id: str = '') -> Apiresult:
        """Implement PATCH ``/docs/{docId}/acl/settings``.

        ``settings``: eg. ``{'allowEditorsToChangePermissions': True}``.
        """
        url = f'{self._doc_url(doc_id)}/acl/settings'
        return self.apicaller.apicall(url, 'PATCH', json=settings)

    # PUBLISHING AND AUTOMATIONS
    # ------------------------------------------------------------------

    def list_categories(self) -> Apiresult:
        """Implement GET ``/categories``."""
        url = f'{self.server}/categories'
        return self.apicaller.apicall(url)

    @check_safemode
    def publish_doc(self, fields: dict|None = None,
                    doc_id: str = '') -> Apiresult:
        """Implement PUT ``/docs/{docId}/publish``.

        ``fields``: publishing options, eg. ``{'slug': 'my-doc',
        'discoverable': True}``.
        """
        url = f'{self._doc_url(doc_id)}/publish'
        return self.apicaller.apicall(url, 'PUT', json=fields or {})

    @check_safemode
    def unpublish_doc(self, doc_id: str = '') -> Apiresult:
        """Implement DELETE ``/docs/{docId}/publish``."""
        url = f'{self._doc_url(doc_id)}/publish'
        return self.apicaller.apicall(url, 'DELETE')

    @check_safemode
    def trigger_automation(self, rule_id: str, payload: dict|None = None,
                           doc_id: str = '') -> Apiresult:
        """Implement POST ``/docs/{docId}/hooks/automation/{ruleId}``.

        ``payload``: the json body the webhook-triggered automation receives.
        """
        url = (f'{self._doc_url(doc_id)}/hooks/automation/'
               f'{prepare_string(rule_id)}')
        return self.apicaller.apicall(url, 'POST', json=payload or {})

    # ANALYTICS
    # ------------------------------------------------------------------

    def list_doc_analytics(self, params: dict|None = None) -> Apiresult:
        """Implement GET ``/analytics/docs``."""
        url = f'{self.server}/analytics/docs'
        return self.apicaller.apicall(url, params=params)

    def list_page_analytics(self, params: dict|None = None,
                            doc_id: str = '') -> Apiresult:
        """Implement GET ``/analytics/docs/{docId}/pages``."""
        doc = self.configurator.select_doc(doc_id)
        url = f'{self.server}/analytics/docs/{prepare_string(doc)}/pages'
        return self.apicaller.apicall(url, params=params)

    def see_doc_analytics_summary(self, params: dict|None = None) -> Apiresult:
        """Implement GET ``/analytics/docs/summary``."""
        url = f'{self.server}/analytics/docs/summary'
        return self.apicaller.apicall(url, params=params)

    def list_pack_analytics(self, params: dict|None = None) -> Apiresult:
        """Implement GET ``/analytics/packs``."""
        url = f'{self.server}/analytics/packs'
        return self.apicaller.apicall(url, params=params)

    def see_pack_analytics_summary(self, params: dict|None = None) -> Apiresult:
        """Implement GET ``/analytics/packs/summary``."""
        url = f'{self.server}/analytics/packs/summary'
        return self.apicaller.apicall(url, params=params)

    def list_pack_formula_analytics(self, pack_id: int,
                                    params: dict|None = None) -> Apiresult:
        """Implement GET ``/analytics/packs/{packId}/formulas``."""
        url = f'{self.server}/analytics/packs/{pack_id}/formulas'
        return self.apicaller.apicall(url, params=params)

    def see_analytics_updated(self) -> Apiresult:
        """Implement GET ``/analytics/updated``.

        If successful, response will be a ``dict`` with the last update
        dates of the analytics data.
        """
        url = f'{self.server}/analytics/updated'
        return self.apicaller.apicall(url)
