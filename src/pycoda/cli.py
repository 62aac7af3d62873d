# Cda, the Pycoda command line tool.

# exit codes for the cli:
# 0 -> ok
# 1 -> error on our side (Python/Pycoda exception raised),
#      managed by Typer (ie, nicely formatted stacktrace)
# 2 -> used by Click/Typer for usage errors, ie errors in cli invocation
# 3 -> we reserve this for errors on api call side (eg http 404)

import os, os.path
import json as modjson
from typing import List, Optional
from typing_extensions import Annotated

import typer
from rich.console import Console
from rich.table import Table

from pycoda.api import CodaApi
from pycoda.config import Configurator, PYCODA_CONFIG

class _CliConfigurator(Configurator):
    """A custom configurator intended for the Pycoda cli.

    After loading the configuration from the usual place,
    this will search for a (optional) "cdaconf.json" file
    located in the current directory, *before* looking for env vars.
    Note: this configurator also overrides the ``CODA_SAFEMODE``
    config key, setting it to ``N``.
    """
    @staticmethod
    def get_config() -> dict[str, str]:
        config = dict(PYCODA_CONFIG)
        pth = os.path.join(os.path.expanduser('~'), '.codaapi/config.json')
        if os.path.isfile(pth):
            with open(pth, 'r') as f:
                config.update(modjson.loads(f.read()))
        if os.path.isfile('cdaconf.json'):
            with open('cdaconf.json', 'r', encoding='utf8') as f:
                config.update(modjson.loads(f.read()))
        for k in config.keys():
            try:
                config[k] = os.environ[k]
            except KeyError:
                pass
        # overrides
        config['CODA_SAFEMODE'] = 'N'
        return config

# the global CodaApi (re-created at every cli call): inside a cli function,
# all api calls (usually just one but may be more) will use this instance
_c = _CliConfigurator()
coda_api = CodaApi(custom_configurator=_c)
# the global Rich console where everything should be printed
cli_console = Console()

BADCALL = 3 # the exit code we reserve for bad call errors (eg http 404)
DONEMSG = '[green]Done.[/green]'
ERRMSG = '[bold red]Error![/bold red]'

# a few helper functions
# ----------------------------------------------------------------------
def _print_inspect(inspect) -> None:
    if inspect:
        cli_console.print(coda_api.inspect())
        cli_console.rule()

def _exit_if_error(res, inspect) -> None:
    # a cache hit leaves no response behind, but only successes are cached
    response = coda_api.apicaller.response
    if (response is not None and not coda_api.ok) or _is_error(res):
        _print_inspect(inspect)
        cli_console.print(ERRMSG, res)
        raise typer.Exit(BADCALL)

def _is_error(res) -> bool:
    return isinstance(res, dict) and 'statusMessage' in res \
        and 'message' in res

def _print_output(content, res, verbose, inspect) -> None:
    _print_inspect(inspect)
    # we print different things, depending on verbose level
    if verbose == 0: # the nicely formatted cli output (text)
        cli_console.print(content)
    elif verbose == 1: # the response from Pycoda (Python object)
        cli_console.print(res)
    elif coda_api.apicaller.response is None: # answered by the cache
        cli_console.print(modjson.dumps(res))
    else: # the original Coda api response (json)
        cli_console.print(coda_api.apicaller.response_as_json())

def _print_done_or_exit(res, verbose, inspect) -> None:
    _exit_if_error(res, inspect)
    _print_output(DONEMSG, res, verbose, inspect)

def _make_items_table(res, *fields) -> Table|str:
    items = res.get('items', [])
    if not items:
        return 'No items found.'
    content = Table(*fields)
    for item in items:
        content.add_row(*[str(item.get(f, '')) for f in fields])
    return content

def _make_key_value_table(res, *fields) -> Table:
    content = Table('key', 'value')
    for f in fields:
        content.add_row(f, str(res.get(f, '')))
    return content

def _row_data_validate(value):
    res = []
    for item in value:
        try:
            col, val = item.split('=', 1)
        except ValueError:
            raise typer.BadParameter('Cell must be declared as "column=value"')
        res.append([col, val])
    return res

def _query_validate(value):
    if not value:
        return None
    try:
        col, val = value.split('=', 1)
    except ValueError:
        raise typer.BadParameter('Query must be declared as "column=value"')
    return {col: val}


# a few recurrent Typer options
# ----------------------------------------------------------------------
_verbose_opt = typer.Option('--verbose', '-v', count=True,
                            help='Verbose level (0-2)')
_inspect_opt = typer.Option('--inspect', '-i',
                            help = 'Print inspect output after api call')
_doc_id_opt = typer.Option('--document', '-d',
                           help='The document ID [default: current]')
_table_id_opt = typer.Option('--table', '-b',  help='The table ID or name',
                             prompt='Insert the table ID or name')
_limit_opt = typer.Option('--limit', '-l', help='Max number of items')

# Typer sub-commands
# ----------------------------------------------------------------------
doc_app = typer.Typer(help='Manage Coda docs')
table_app = typer.Typer(help='Manage tables inside a doc')
row_app = typer.Typer(help='Manage rows inside a table')
cache_app = typer.Typer(help='Manage the local response cache')
app = typer.Typer(no_args_is_help=True)
app.add_typer(doc_app, name='doc', no_args_is_help=True)
app.add_typer(table_app, name='table', no_args_is_help=True)
app.add_typer(row_app, name='row', no_args_is_help=True)
app.add_typer(cache_app, name='cache', no_args_is_help=True)

# cda conf -> print the current configuration
# cda whoami -> describe the api key owner
# ----------------------------------------------------------------------
@app.command('conf')
def print_conf() -> None:
    """Print the current configuration"""
    cf = coda_api.configurator
    cli_console.print(cf.config2output(cf.config, multiline=True))

@app.command('whoami')
def whoami(verbose: Annotated[int, _verbose_opt] = 0,
           inspect: Annotated[bool, _inspect_opt] = False) -> None:
    """Describe the owner of the api key"""
    res = coda_api.whoami()
    _exit_if_error(res, inspect)
    content = _make_key_value_table(res, 'name', 'loginId', 'type',
                                    'scoped', 'tokenName')
    _print_output(content, res, verbose, inspect)

# cda doc -> for managing docs
# ----------------------------------------------------------------------
@doc_app.command('list')
def list_docs(limit: Annotated[Optional[int], _limit_opt] = None,
              verbose: Annotated[int, _verbose_opt] = 0,
              inspect: Annotated[bool, _inspect_opt] = False) -> None:
    """List the docs you have access to"""
    res = coda_api.list_docs({'limit': limit})
    _exit_if_error(res, inspect)
    content = _make_items_table(res, 'id', 'name', 'ownerName', 'updatedAt')
    _print_output(content, res, verbose, inspect)

@doc_app.command('see')
def see_doc(doc_id: Annotated[str, _doc_id_opt] = '',
            verbose: Annotated[int, _verbose_opt] = 0,
            inspect: Annotated[bool, _inspect_opt] = False) -> None:
    """Describe a doc"""
    res = coda_api.see_doc(doc_id)
    _exit_if_error(res, inspect)
    content = _make_key_value_table(res, 'id', 'name', 'owner',
                                    'createdAt', 'updatedAt', 'browserLink')
    _print_output(content, res, verbose, inspect)

@doc_app.command('id')
def doc_id_from_url(url: Annotated[str, typer.Argument(
                                   help='The doc url, as seen in the browser')]
                    ) -> None:
    """Extract the doc ID from a doc url"""
    doc_id = CodaApi.get_doc_id(url)
    if doc_id is None:
        raise typer.BadParameter('No doc ID found in this url.')
    cli_console.print(doc_id)

# cda table -> for managing tables and their columns
# ----------------------------------------------------------------------
@table_app.command('list')
def list_tables(doc_id: Annotated[str, _doc_id_opt] = '',
                verbose: Annotated[int, _verbose_opt] = 0,
                inspect: Annotated[bool, _inspect_opt] = False) -> None:
    """List tables in a doc"""
    res = coda_api.list_tables(doc_id=doc_id)
    _exit_if_error(res, inspect)
    content = _make_items_table(res, 'id', 'name', 'tableType')
    _print_output(content, res, verbose, inspect)

@table_app.command('see')
def see_table(tname: Annotated[str, _table_id_opt],
              doc_id: Annotated[str, _doc_id_opt] = '',
              verbose: Annotated[int, _verbose_opt] = 0,
              inspect: Annotated[bool, _inspect_opt] = False) -> None:
    """Describe a table"""
    res = coda_api.see_table(tname, doc_id)
    _exit_if_error(res, inspect)
    content = _make_key_value_table(res, 'id', 'name', 'tableType',
                                    'rowCount', 'createdAt', 'updatedAt')
    _print_output(content, res, verbose, inspect)

@table_app.command('cols')
def list_cols(tname: Annotated[str, _table_id_opt],
              doc_id: Annotated[str, _doc_id_opt] = '',
              verbose: Annotated[int, _verbose_opt] = 0,
              inspect: Annotated[bool, _inspect_opt] = False) -> None:
    """List columns in a table"""
    res = coda_api.list_cols(tname, doc_id=doc_id)
    _exit_if_error(res, inspect)
    content = _make_items_table(res, 'id', 'name', 'calculated')
    _print_output(content, res, verbose, inspect)

# cda row -> for managing rows
# ----------------------------------------------------------------------
@row_app.command('list')
def list_rows(tname: Annotated[str, _table_id_opt],
              query: Annotated[Optional[str], typer.Option('--query', '-q',
                               help='Filter rows as "column=value"',
                               callback=_query_validate)] = None,
              limit: Annotated[Optional[int], _limit_opt] = None,
              doc_id: Annotated[str, _doc_id_opt] = '',
              verbose: Annotated[int, _verbose_opt] = 0,
              inspect: Annotated[bool, _inspect_opt] = False) -> None:
    """List rows in a table"""
    res = coda_api.list_rows(tname, query, {'limit': limit}, doc_id)
    _exit_if_error(res, inspect)
    items = res.get('items', [])
    if items:
        cols = list(items[0].get('values', {}).keys())
        content = Table('id', *cols)
        for row in items:
            values = row.get('values', {})
            content.add_row(row['id'], *[str(values.get(c, '')) for c in cols])
    else:
        content = 'No rows found.'
    _print_output(content, res, verbose, inspect)

@row_app.command('see')
def see_row(row: Annotated[str, typer.Argument(help='The row ID or name')],
            tname: Annotated[str, _table_id_opt],
            doc_id: Annotated[str, _doc_id_opt] = '',
            verbose: Annotated[int, _verbose_opt] = 0,
            inspect: Annotated[bool, _inspect_opt] = False) -> None:
    """Describe a row"""
    res = coda_api.see_row(tname, row, doc_id=doc_id)
    _exit_if_error(res, inspect)
    content = Table('column', 'value')
    for k, v in res.get('values', {}).items():
        content.add_row(k, str(v))
    _print_output(content, res, verbose, inspect)

@row_app.command('insert')
def insert_row(cells: Annotated[List[str], typer.Argument(
                                help='Cells as "column=value"',
                                callback=_row_data_validate)],
               tname: Annotated[str, _table_id_opt],
               key_cols: Annotated[Optional[List[str]], typer.Option(
                                '--key', '-k',
                                help='Key column, for upserting')] = None,
               doc_id: Annotated[str, _doc_id_opt] = '',
               verbose: Annotated[int, _verbose_opt] = 0,
               inspect: Annotated[bool, _inspect_opt] = False) -> None:
    """Insert (or upsert) a row in a table.

    Repeat KEY for multiple key columns, eg:

    % cda row insert Name=Bob Age=42 -b People -k Name"""
    res = coda_api.insert_rows(tname, dict(cells), key_cols, doc_id=doc_id)
    if res is not True:
        _print_inspect(inspect)
        cli_console.print(ERRMSG, res)
        raise typer.Exit(BADCALL)
    _print_output(DONEMSG, res, verbose, inspect)

@row_app.command('delete')
def delete_row(row: Annotated[str, typer.Argument(help='The row ID or name')],
               tname: Annotated[str, _table_id_opt],
               doc_id: Annotated[str, _doc_id_opt] = '',
               verbose: Annotated[int, _verbose_opt] = 0,
               inspect: Annotated[bool, _inspect_opt] = False) -> None:
    """Delete a row"""
    res = coda_api.delete_row(tname, row, doc_id)
    _print_done_or_exit(res, verbose, inspect)

# cda cache -> for managing the response cache
# ----------------------------------------------------------------------
@cache_app.command('clear')
def clear_cache() -> None:
    """Delete all cached responses"""
    deleted = coda_api.clear_cache()
    cli_console.print(DONEMSG, 'Deleted entries:', deleted)


if __name__ == '__main__':
    app()
