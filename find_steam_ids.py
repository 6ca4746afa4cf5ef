# /// script
# requires-python = "==3.12.*"
# dependencies = [
#   "httpx",
#   "tqdm",
#   "humanize"
# ]
# ///

"""
Looks up Steam app-ids for a list of game names and saves one `<name>.steam` file per game.
Lookups run in parallel (a small pool of worker threads), since each Steam Store search
  call spends most of its time waiting on the network.

Usage:
  uv run ./find_steam_ids.py games.txt
  uv run ./find_steam_ids.py --output my_output --workers 16 --skip-existing games.txt
  uv run ./find_steam_ids.py --verbose games.txt

Args:
  INPUT_FILE (required) -- one game name per line; blank lines are ignored
  --output (optional) -- directory for the .steam files (default: output)
  --workers (optional) -- number of concurrent lookups (default: 8)
  --skip-existing (optional) -- reuse the id in an existing .steam file instead of calling the api
  --verbose (optional) -- show request details and the real error for each failed lookup
"""

import argparse
import contextlib
import logging
import os
import re
import sys
import tempfile
import time
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

import httpx
import humanize
from tqdm import tqdm

## setup logging ----------------------------------------------------
log_level_name: str = os.getenv('LOG_LEVEL', 'INFO').upper()
log_level = getattr(
    logging, log_level_name, logging.INFO
)  # maps the string name to the corresponding logging level constant; defaults to INFO
logging.basicConfig(
    level=log_level,
    format='[%(asctime)s] %(levelname)s [%(module)s-%(funcName)s()::%(lineno)d] %(message)s',
    datefmt='%d/%b/%Y %H:%M:%S',
)
log = logging.getLogger(__name__)
## prevent httpx from logging
if log_level <= logging.INFO:
    for noisy in ('httpx', 'httpcore'):
        lg = logging.getLogger(noisy)
        lg.setLevel(logging.WARNING)
        lg.propagate = False  # don't bubble up to root

## constants --------------------------------------------------------
STEAM_SEARCH_URL: str = 'https://store.steampowered.com/api/storesearch/'
API_LANGUAGE: str = 'english'
API_COUNTRY_CODE: str = 'US'
API_TIMEOUT_SECONDS: float = 10.0
USER_AGENT: str = 'find-steam-ids/1.0'

RECORD_SUFFIX: str = '.steam'
RECORD_FILE_MODE: int = 0o644
DEFAULT_OUTPUT_DIR: str = 'output'
DEFAULT_WORKERS: int = 8

MAX_VERBOSE_RESULTS: int = 3  # show top-N search results in verbose mode
SUMMARY_SEPARATOR_WIDTH: int = 50

INVALID_CHARS_PATTERN = re.compile(r'[^A-Za-z0-9 _-]')
SPACE_UNDERSCORE_PATTERN = re.compile(r'[_\s]+')
LEADING_INTEGER_PATTERN = re.compile(r'\s*(\d+)')


## errors -----------------------------------------------------------


class ResolutionError(Exception):
    """
    Base for any failed name-to-id lookup. The message is what verbose mode shows.
    """


class NetworkError(ResolutionError):
    pass


class HttpStatusError(ResolutionError):
    def __init__(self, status_code: int) -> None:
        super().__init__(f'HTTP error: {status_code}')
        self.status_code: int = status_code


class DecodeError(ResolutionError):
    pass


class NoMatchError(ResolutionError):
    pass


class PersistenceError(Exception):
    pass


class RecordReadError(Exception):
    pass


class RecordNotFoundError(RecordReadError):
    pass


class CorruptRecordError(RecordReadError):
    pass


class NoQueriesError(Exception):
    pass


## name sanitizing --------------------------------------------------


def sanitize_name(name: str) -> str:
    """
    Converts a game name into a filesystem-safe key.
    - Replaces anything other than ascii letters, digits, space, hyphen, and underscore with an underscore.
    - Collapses each run of spaces/underscores into a single underscore.
    - Strips leading and trailing underscores.

    Example: 'The Witcher 3: Wild Hunt' -> 'The_Witcher_3_Wild_Hunt'
    Called by: ItemProcessor.process()
    """
    replaced: str = INVALID_CHARS_PATTERN.sub('_', name)
    collapsed: str = SPACE_UNDERSCORE_PATTERN.sub('_', replaced)
    return collapsed.strip('_')


## results ----------------------------------------------------------


@dataclass(frozen=True)
class LookupResult:
    """
    Outcome of processing one game name; handed from a worker thread to the main thread.
    """

    name: str
    steam_id: int | None = None
    success: bool = False
    error: Exception | None = None

    @classmethod
    def found(cls, name: str, steam_id: int) -> 'LookupResult':
        return cls(name=name, steam_id=steam_id, success=True)

    @classmethod
    def failed(cls, name: str, error: Exception) -> 'LookupResult':
        return cls(name=name, success=False, error=error)


class RecordStore:
    """
    Manages the one-file-per-game `.steam` records in the output directory.
    - Maps a sanitized key to `<output_dir>/<key>.steam`.
    - Reads the leading integer from an existing record; anything else counts as corrupt.
    - Writes through a temp file plus `os.replace()`, so a reader never sees a half-written record.
    - Does no locking; duplicate names in the input mean the last writer wins.
    """

    def __init__(self, root: Path) -> None:
        self.root: Path = root

    def path_for(self, key: str) -> Path:
        return self.root / f'{key}{RECORD_SUFFIX}'

    def exists(self, key: str) -> bool:
        return self.path_for(key).exists()

    def read(self, key: str) -> int:
        """
        Returns the stored steam-id for `key`.
        Raises RecordNotFoundError if there is no record, CorruptRecordError if it doesn't start with an integer.
        """
        path: Path = self.path_for(key)
        try:
            content: str = path.read_text(encoding='utf-8')
        except FileNotFoundError as exc:
            raise RecordNotFoundError(f'no record at {path}') from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise CorruptRecordError(f'unreadable record at {path}: {exc}') from exc
        match: re.Match[str] | None = LEADING_INTEGER_PATTERN.match(content)
        if match is None:
            raise CorruptRecordError(f'no steam-id in {path}: {content[:40]!r}')
        return int(match.group(1))

    def write(self, key: str, steam_id: int) -> Path:
        path: Path = self.path_for(key)
        tmp_name: str | None = None
        try:
            ## temp name length doesn't depend on the key
            with tempfile.NamedTemporaryFile(
                'w', encoding='utf-8', dir=self.root, prefix='.', suffix='.tmp', delete=False
            ) as fh:
                tmp_name = fh.name
                fh.write(str(steam_id))
            os.chmod(tmp_name, RECORD_FILE_MODE)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            raise PersistenceError(f'error writing file: {exc}') from exc
        return path


class SteamSearchClient:
    """
    Looks up a game's steam-id via the Steam Store search api.
    - Sends one GET per name, with fixed language/country params and a 10-second timeout.
    - Makes no retries; every failure is reported back as a ResolutionError subclass.
    - Trusts the api's ranking: the first search result wins.
    - Shares one httpx.Client across worker threads (httpx clients are thread-safe).
    """

    def __init__(
        self,
        client: httpx.Client,
        *,
        endpoint: str = STEAM_SEARCH_URL,
        timeout_s: float = API_TIMEOUT_SECONDS,
    ) -> None:
        self.client: httpx.Client = client
        self.endpoint: str = endpoint
        self.timeout_s: float = timeout_s

    def build_params(self, name: str) -> dict[str, str]:
        return {'term': name, 'l': API_LANGUAGE, 'cc': API_COUNTRY_CODE}

    def resolve(self, name: str) -> int:
        """
        Returns the steam-id of the top search result for `name`.
        Called by: ItemProcessor.process()
        """
        if not name:
            raise ResolutionError('empty product name')
        params: dict[str, str] = self.build_params(name)
        log.debug(f'querying, ``{httpx.URL(self.endpoint, params=params)}``')

        start: float = time.monotonic()
        try:
            resp: httpx.Response = self.client.get(self.endpoint, params=params, timeout=self.timeout_s)
        except httpx.DecodingError as exc:
            log.debug(f'undecodable body for ``{name}``: {exc!r}')
            raise DecodeError(f'response decode error: {exc}') from exc
        except httpx.RequestError as exc:
            log.debug(f'network error for ``{name}``: {exc!r}')
            raise NetworkError(f'network error: {exc}') from exc
        log.debug(f'response status: {resp.status_code} (took {time.monotonic() - start:.2f}s)')

        if resp.status_code != httpx.codes.OK:
            log.debug(f'bad status for ``{name}``: {resp.status_code}')
            raise HttpStatusError(resp.status_code)

        items: list[object] = self.parse_items(resp)
        log.debug(f'found {len(items)} result(s) for ``{name}``')
        for position, item in enumerate(items[:MAX_VERBOSE_RESULTS], start=1):
            if isinstance(item, dict):
                log.debug(f'  {position}. {item.get("name")} (ID: {item.get("id")})')

        if not items:
            raise NoMatchError('no results found')
        return self.extract_id(items[0])

    def parse_items(self, resp: httpx.Response) -> list[object]:
        try:
            data: object = resp.json()
        except ValueError as exc:
            log.debug(f'json parse error: {exc}')
            raise DecodeError(f'JSON parse error: {exc}') from exc
        items: object = data.get('items') if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise DecodeError('JSON parse error: response has no `items` list')
        return items

    def extract_id(self, item: object) -> int:
        steam_id: object = item.get('id') if isinstance(item, dict) else None
        ## bool is an int subclass; a json `true` is not an id
        if not isinstance(steam_id, int) or isinstance(steam_id, bool) or steam_id < 0:
            raise DecodeError(f'JSON parse error: top result has no usable id: {item!r}')
        return steam_id


class ItemProcessor:
    """
    Handles one game name from start to finish: cached record or api lookup, then save.
    - With skip_existing, reuses an existing record without calling the api.
    - Falls through to a fresh lookup when that record is missing or unparseable.
    - Reports a lookup that can't be saved as a failure, not a success.
    - Never raises for per-name problems; the outcome is always a LookupResult.
    """

    def __init__(self, client: SteamSearchClient, store: RecordStore, *, skip_existing: bool = False) -> None:
        self.client = client
        self.store = store
        self.skip_existing = skip_existing

    def process(self, name: str) -> LookupResult:
        key: str = sanitize_name(name)

        if self.skip_existing and self.store.exists(key):
            log.debug(f'record already exists, ``{self.store.path_for(key)}``')
            try:
                return LookupResult.found(name, self.store.read(key))
            except RecordReadError as exc:
                log.debug(f'ignoring existing record; {exc}')

        try:
            steam_id: int = self.client.resolve(name)
        except ResolutionError as exc:
            return LookupResult.failed(name, exc)

        try:
            self.store.write(key, steam_id)
        except PersistenceError as exc:
            return LookupResult.failed(name, exc)
        return LookupResult.found(name, steam_id)


class Dispatcher:
    """
    Runs ItemProcessor over all names with a bounded pool of worker threads.
    - Uses min(workers, len(names)) threads, pulling from the executor's shared work queue.
    - Yields each LookupResult as soon as it is ready, so order follows completion, not input.
    - Finishes only after every submitted name has produced exactly one result.
    """

    def __init__(self, processor: ItemProcessor, workers: int = DEFAULT_WORKERS) -> None:
        if workers < 1:
            raise ValueError(f'workers must be at least 1, got {workers}')
        self.processor = processor
        self.workers: int = workers

    def effective_workers(self, total: int) -> int:
        return min(self.workers, total)

    def run(self, names: list[str]) -> Iterator[LookupResult]:
        if not names:
            return
        pool_size: int = self.effective_workers(len(names))
        log.debug(f'starting {pool_size} worker(s) for {len(names)} name(s)')
        with ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix='steam-lookup') as executor:
            futures: dict[Future[LookupResult], str] = {
                executor.submit(self.processor.process, name): name for name in names
            }
            for future in as_completed(futures):
                try:
                    yield future.result()
                except Exception as exc:
                    log.exception(f'unexpected error processing ``{futures[future]}``')
                    yield LookupResult.failed(futures[future], exc)


class RunSummary:
    """
    Tallies results on the main thread as they arrive.
    """

    def __init__(self, total: int) -> None:
        self.total: int = total
        self.completed: int = 0
        self.success_count: int = 0
        self.failed_count: int = 0
        self.failed_names: list[str] = []

    def consume(self, result: LookupResult) -> None:
        self.completed += 1
        if result.success:
            self.success_count += 1
        else:
            self.failed_count += 1
            self.failed_names.append(result.name)

    @property
    def is_complete(self) -> bool:
        return self.completed >= self.total


class CLI:
    """
    Manages command-line parsing for the script entrypoint.
    - Takes the input file as the one positional argument.
    - Validates --workers as a positive integer.
    - Exposes a parse helper to support testing with custom argv.
    """

    @staticmethod
    def build_parser() -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description='Look up Steam app-ids for a list of game names and write one .steam file per game.',
            epilog=(
                'Examples:\n'
                '  find_steam_ids.py games.txt\n'
                '  find_steam_ids.py --output my_output --workers 16 --skip-existing games.txt\n'
                '  find_steam_ids.py --verbose games.txt'
            ),
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        parser.add_argument('input_file', help='Text file with one game name per line')
        parser.add_argument('--output', default=DEFAULT_OUTPUT_DIR, help='Output directory for .steam files')
        parser.add_argument(
            '--workers',
            type=positive_int,
            default=DEFAULT_WORKERS,
            metavar='INTEGER',
            help=f'Number of concurrent workers (default: {DEFAULT_WORKERS})',
        )
        parser.add_argument(
            '--skip-existing', action='store_true', help='Reuse ids from existing .steam files instead of querying'
        )
        parser.add_argument('--verbose', action='store_true', help='Show detailed output')
        return parser

    @staticmethod
    def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
        return CLI.build_parser().parse_args(argv)


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f'not an integer: {value!r}')
    if number < 1:
        raise argparse.ArgumentTypeError(f'must be at least 1, got {number}')
    return number


def read_queries(path: Path) -> list[str]:
    """
    Returns the non-blank, trimmed lines of `path`, in file order (duplicates kept).
    Called by: main()
    """
    content: str = path.read_text(encoding='utf-8')
    names: list[str] = [line.strip() for line in content.splitlines() if line.strip()]
    if not names:
        raise NoQueriesError('No product names found in file.')
    return names


def format_result_line(result: LookupResult, position: int, total: int, verbose: bool) -> str:
    """
    Builds the one-line progress message for a finished lookup.
    Non-verbose mode reports every failure as 'Not found'.
    """
    prefix: str = f'[{position}/{total}] {result.name}...'
    if result.success:
        return f'{prefix} ✓ Found (ID: {result.steam_id})'
    message: str = 'Not found'
    if verbose and result.error is not None:
        message = str(result.error)
    return f'{prefix} ✗ {message}'


def print_summary(summary: RunSummary, output_dir: str, elapsed_s: float) -> None:
    print(f'\n{"=" * SUMMARY_SEPARATOR_WIDTH}')
    print('Summary:')
    print(f'  Success: {summary.success_count}')
    print(f'  Failed:  {summary.failed_count}')
    print(f'  Output:  {output_dir}/')
    print(f'  Elapsed: {humanize.naturaldelta(timedelta(seconds=elapsed_s))}')
    if summary.failed_names:
        print('\nFailed games:')
        for name in summary.failed_names:
            print(f'  - {name}')
    print(f"\nDone! Check the '{output_dir}/' folder for {RECORD_SUFFIX} files.")


def run_pipeline(
    names: list[str], processor: ItemProcessor, workers: int, *, verbose: bool = False, show_progress: bool = True
) -> RunSummary:
    """
    Dispatches all names and folds the results into a RunSummary as they complete.
    Called by: main()
    """
    summary = RunSummary(total=len(names))
    dispatcher = Dispatcher(processor, workers)
    with tqdm(total=len(names), desc='Looking up', disable=not show_progress) as progress:
        for result in dispatcher.run(names):
            summary.consume(result)
            progress.write(format_result_line(result, summary.completed, summary.total, verbose))
            progress.update(1)
    assert summary.is_complete
    return summary


def main(argv: list[str] | None = None) -> int:
    """
    Reads game names, looks them up in parallel, writes .steam files, and prints a summary.

    Flow:
    - Parses CLI args.
    - Exits 1 if the input file is missing, the output dir can't be created,
      or the input has no usable names. These are checked before any lookups start.
    - Builds one shared httpx client, the record store, and the item processor.
    - Runs the worker pool and prints a line per result as each one completes.
    - Prints the summary; per-name failures don't change the exit status.

    Called by: dundermain
    """
    ## handle args --------------------------------------------------
    args: argparse.Namespace = CLI.parse_args(argv)
    if args.verbose:
        log.setLevel(logging.DEBUG)
    input_path: Path = Path(args.input_file).expanduser()
    output_dir: Path = Path(args.output).expanduser()

    ## fatal checks, before any concurrent work ----------------------
    if not input_path.exists():
        print(f"Error: File '{input_path}' not found.", file=sys.stderr)
        return 1
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        print(f'Error creating output directory: {exc}', file=sys.stderr)
        return 1
    try:
        names: list[str] = read_queries(input_path)
    except NoQueriesError as exc:
        print(f'Error: {exc}', file=sys.stderr)
        return 1
    except (OSError, UnicodeDecodeError) as exc:
        print(f'Error reading file: {exc}', file=sys.stderr)
        return 1

    ## announce run -------------------------------------------------
    print(f'Processing {len(names)} game(s)...')
    if args.verbose:
        print(f'  Output directory: {args.output}')
        print(f'  Workers: {args.workers}')
        print(f'  Skip existing: {args.skip_existing}')
    print()

    ## run the pool -------------------------------------------------
    headers: dict[str, str] = {'user-agent': USER_AGENT}
    limits: httpx.Limits = httpx.Limits(max_keepalive_connections=args.workers, max_connections=args.workers)
    start: float = time.monotonic()
    with httpx.Client(headers=headers, timeout=API_TIMEOUT_SECONDS, limits=limits) as http_client:
        processor = ItemProcessor(
            SteamSearchClient(http_client), RecordStore(output_dir), skip_existing=args.skip_existing
        )
        summary: RunSummary = run_pipeline(names, processor, args.workers, verbose=args.verbose)

    ## wrap up output -----------------------------------------------
    print_summary(summary, args.output, time.monotonic() - start)
    return 0

    ## end def main()


if __name__ == '__main__':
    raise SystemExit(main())
