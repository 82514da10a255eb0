import argparse
from dataclasses import dataclass
from datetime import datetime
import fnmatch
import io
import logging
import os
import sys
import tempfile
from pathlib import Path, PurePath

import pyperclip
from tqdm import tqdm

import digest_utils
from digest_utils import (
    decode_best_effort,
    read_sample,
    classify_content,
    has_shell_shebang,
    load_and_validate_config,
    validate_config,
    validate_glob_pattern,
    mb_to_bytes,
    ConfigurationError,
    ConfigNotFoundError,
    CONTENT_BINARY,
    CONTENT_SHELL,
    DEFAULT_CONFIG,
    DEFAULT_IGNORE_PATTERNS,
    FALLBACK_PREFIX,
)


__version__ = "0.1.0"

DIGEST_TITLE = "# AI Digest"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

BASENAME_GLOB = 'basename_glob'
PATH_SUBSTRING = 'path_substring'

_GLOB_CHARS = frozenset('*?[')


class DigestError(Exception):
    """Base class for errors raised while building or delivering a digest."""


class ReadError(DigestError):
    """Raised when a candidate file cannot be read."""


class AssemblyError(DigestError):
    """Raised when assembly cannot produce a usable digest.

    ``document`` holds whatever had been assembled when the error occurred.
    """

    def __init__(self, message, document=None):
        super().__init__(message)
        self.document = document


class SizeLimitExceeded(AssemblyError):
    """Raised when the digest grows past the configured size limit."""


class EmptyResult(AssemblyError):
    """Raised when nothing qualified for inclusion."""


class DeliveryError(DigestError):
    """Raised when the sink rejects the digest.

    ``fallback_path`` is where the digest was preserved, or ``None`` when
    preserving it failed as well.
    """

    def __init__(self, message, fallback_path=None):
        super().__init__(message)
        self.fallback_path = fallback_path


# Logging

_C_RESET = "\033[0m"
_LEVEL_COLORS = {
    logging.DEBUG: "\033[2m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[31m",
}


def _use_color(stream=None):
    stream = stream or sys.stderr
    if os.getenv("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class CLILogFormatter(logging.Formatter):
    """Format log records for terminal output.

    INFO records are printed as-is. Every other level is prefixed with its
    name, and continuation lines are indented to line up with the first.
    """

    def format(self, record):
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        if record.levelno == logging.INFO:
            return message

        prefix = f"{record.levelname}: "
        lines = message.splitlines() or [""]
        indent = " " * len(prefix)
        body = "\n".join([lines[0]] + [indent + line for line in lines[1:]])

        color = _LEVEL_COLORS.get(record.levelno)
        if color and _use_color():
            prefix = f"{color}{prefix}{_C_RESET}"
        return prefix + body


def _configure_logging(level):
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(CLILogFormatter())
    logging.basicConfig(level=level, handlers=[handler])
    # basicConfig is a no-op when the root logger already has handlers.
    logging.getLogger().setLevel(level)


def _progress_enabled():
    """Return ``True`` when progress bars should be displayed."""

    if logging.getLogger().getEffectiveLevel() <= logging.DEBUG:
        return False
    if os.getenv("CI"):
        return False
    return True


# Ignore matching

@dataclass(frozen=True)
class IgnorePattern:
    """One ignore rule: a base-name glob or a literal path substring.

    ``anchor`` is the root's location relative to the directory the rule
    came from (a ``.gitignore`` above the root). Rules containing ``/`` are
    matched against the path as seen from that directory.
    """

    text: str
    kind: str
    anchor: str = ''

    @classmethod
    def parse(cls, text, anchor=''):
        if any(char in _GLOB_CHARS for char in text):
            return cls(text, BASENAME_GLOB, anchor)
        return cls(text, PATH_SUBSTRING, anchor)

    def matches(self, name, relative_str):
        if self.anchor and '/' in self.text:
            relative_str = f"{self.anchor}/{relative_str}"
        if self.kind == BASENAME_GLOB:
            # Globs with a separator come from .gitignore entries like docs/*.md.
            target = relative_str if '/' in self.text else name
            return fnmatch.fnmatchcase(target, self.text)
        return self.text in relative_str


class IgnoreSet:
    """An immutable union of ignore patterns.

    A path is ignored when any pattern matches it. Substring patterns are
    deliberately loose: ``build`` also ignores ``rebuild-tools/x``.
    """

    def __init__(self, patterns=()):
        self._patterns = tuple(
            p if isinstance(p, IgnorePattern) else IgnorePattern.parse(p)
            for p in patterns
        )

    @classmethod
    def from_config(cls, config):
        filters = config.get('filters', {})
        patterns = []
        if filters.get('use_default_ignores', True):
            patterns.extend(DEFAULT_IGNORE_PATTERNS)
        patterns.extend(filters.get('ignore_patterns') or [])
        return cls(patterns)

    @property
    def patterns(self):
        return self._patterns

    def __len__(self):
        return len(self._patterns)

    def __iter__(self):
        return iter(self._patterns)

    def __repr__(self):
        return f"IgnoreSet({[p.text for p in self._patterns]!r})"

    def extended(self, patterns):
        """Return a new set holding these patterns plus ``patterns``."""
        return IgnoreSet(self._patterns + tuple(patterns))

    def matches(self, relative_path):
        """Return ``True`` if ``relative_path`` should be ignored."""
        relative = PurePath(relative_path)
        name = relative.name
        relative_str = relative.as_posix()
        return any(p.matches(name, relative_str) for p in self._patterns)


def find_gitignore(start):
    """Return the nearest ``.gitignore`` at or above ``start``, if any."""
    try:
        current = Path(start).resolve()
    except OSError as exc:
        logging.warning("Could not resolve '%s' while looking for .gitignore: %s", start, exc)
        return None
    if not current.is_dir():
        current = current.parent
    for directory in (current, *current.parents):
        candidate = directory / '.gitignore'
        if candidate.is_file():
            return candidate
    return None


def load_gitignore_patterns(gitignore_path):
    """Translate a ``.gitignore`` into ignore patterns.

    Anchors (``/`` and ``**/``) and trailing slashes are dropped so each
    entry can be matched as a glob or substring. Negations are not
    supported and are skipped.
    """
    patterns = []
    try:
        with open(gitignore_path, 'r', encoding='utf-8', errors='replace') as f:
            lines = f.read().splitlines()
    except OSError as exc:
        logging.warning("Could not read %s: %s", gitignore_path, exc)
        return patterns

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith('#'):
            continue
        if line.startswith('!'):
            logging.debug("Skipping unsupported negated .gitignore entry: %s", line)
            continue
        while line.startswith('**/'):
            line = line[3:]
        line = line.strip('/')
        if line:
            patterns.append(line)
    logging.debug("Loaded %d patterns from %s", len(patterns), gitignore_path)
    return patterns


def gitignore_ignores(root, gitignore_path):
    """Return :class:`IgnorePattern` objects for ``gitignore_path`` seen from ``root``."""
    try:
        anchor = Path(root).resolve().relative_to(Path(gitignore_path).resolve().parent)
    except ValueError:
        anchor = PurePath()
    anchor_str = '' if anchor == PurePath() else anchor.as_posix()
    return [
        IgnorePattern.parse(text, anchor_str)
        for text in load_gitignore_patterns(gitignore_path)
    ]


# Traversal

@dataclass(frozen=True)
class CandidateFile:
    path: Path
    relative_path: PurePath
    tag: str
    size: int


def infer_tag(filename, content=b"", *, probe=classify_content) -> str:
    """Return the fenced-block language hint for ``filename``.

    The extension wins when there is one. Extensionless shell scripts are
    tagged ``bash``; everything else falls back to ``txt``.
    """
    suffix = PurePath(filename).suffix
    if len(suffix) > 1:
        return suffix[1:]
    if isinstance(content, str):
        content = content.encode('utf-8', errors='replace')
    if has_shell_shebang(content) or probe(content) == CONTENT_SHELL:
        return 'bash'
    return 'txt'


def _bump(stats, key, amount=1):
    if stats is not None:
        stats[key] = stats.get(key, 0) + amount


def _collect_directory_files(root_path, ignore_set, *, exclude=frozenset(), stats=None):
    """Return ``(path, relative_path)`` pairs under ``root_path``.

    Dot-named and ignored directories are pruned before ``os.walk`` descends
    into them. The result is sorted by relative path.
    """

    def _on_error(exc):
        logging.warning(
            "Error while traversing '%s': %s. Partial results returned.",
            getattr(exc, 'filename', root_path),
            exc,
        )

    found = []
    for dirpath, dirnames, filenames in os.walk(root_path, onerror=_on_error):
        rel_dir = Path(dirpath).relative_to(root_path)

        kept = []
        for name in dirnames:
            if name.startswith('.') or ignore_set.matches(rel_dir / name):
                logging.debug("Pruning directory: %s", (rel_dir / name).as_posix())
                _bump(stats, 'ignored')
                continue
            kept.append(name)
        dirnames[:] = sorted(kept)

        for name in filenames:
            relative = rel_dir / name
            if ignore_set.matches(relative):
                _bump(stats, 'ignored')
                continue
            file_path = Path(dirpath) / name
            if exclude and file_path.resolve() in exclude:
                logging.debug("Skipping own output file: %s", file_path)
                continue
            if not file_path.is_file():
                continue
            found.append((file_path, relative))

    found.sort(key=lambda item: item[1].as_posix())
    return found


def walk(root, ignore_set, *, max_file_bytes=None, probe=classify_content, exclude=(), stats=None):
    """Yield the :class:`CandidateFile` entries for ``root``.

    A file root yields itself without consulting ``ignore_set``. A
    dot-named directory root yields nothing. Every
    candidate is still subject to the per-file size cap and the binary
    probe. The generator makes a single forward pass.
    """
    root_path = Path(root)
    exclude = frozenset(Path(p).resolve() for p in exclude)

    if root_path.is_file():
        entries = [(root_path, PurePath(root_path.name))]
    elif root_path.resolve().name.startswith('.'):
        logging.warning(
            "Skipping '%s': dot-named directories are never digested. "
            "Pass the files inside it explicitly to include them.",
            root,
        )
        _bump(stats, 'ignored')
        return
    else:
        entries = _collect_directory_files(
            root_path, ignore_set, exclude=exclude, stats=stats
        )

    for file_path, relative in entries:
        try:
            size = file_path.stat().st_size
        except OSError as exc:
            logging.warning("Could not stat %s: %s. Skipping.", file_path, exc)
            _bump(stats, 'read_errors')
            continue

        if max_file_bytes is not None and size > max_file_bytes:
            logging.info(
                "Skipping %s: %d bytes exceeds the per-file limit of %d bytes.",
                relative.as_posix(),
                size,
                max_file_bytes,
            )
            _bump(stats, 'skipped_large')
            continue

        try:
            sample = read_sample(file_path)
        except OSError as exc:
            logging.warning("Could not read %s: %s. Skipping.", file_path, exc)
            _bump(stats, 'read_errors')
            continue

        if probe(sample) == CONTENT_BINARY:
            logging.debug("Skipping binary file: %s", relative.as_posix())
            _bump(stats, 'skipped_binary')
            continue

        yield CandidateFile(
            path=file_path,
            relative_path=relative,
            tag=infer_tag(file_path.name, sample, probe=probe),
            size=size,
        )


# Assembly

def render_tree(root_path, relative_paths):
    """Return a ``tree``-style diagram of ``relative_paths`` under ``root_path``."""
    tree = {}
    for relative in relative_paths:
        parts = PurePath(relative).parts
        node = tree
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node.setdefault(parts[-1], None)

    root_name = Path(root_path).name or Path(root_path).resolve().name
    lines = [f"{root_name}/"]

    def _walk(node, prefix):
        items = sorted(node.items())
        for index, (name, child) in enumerate(items):
            last = index == len(items) - 1
            connector = "└── " if last else "├── "
            lines.append(f"{prefix}{connector}{name}")
            if child is not None:
                _walk(child, prefix + ("    " if last else "│   "))

    _walk(tree, "")
    return "\n".join(lines)


class DigestDocument:
    """The markdown digest being built for a single run.

    Text is accumulated in memory. ``size_bytes`` tracks the UTF-8 size of
    everything appended so far.
    """

    def __init__(self, generated_on=None):
        self._buffer = io.StringIO()
        self.size_bytes = 0
        self.sections = []
        self.tree_count = 0
        self.stats = {
            'ignored': 0,
            'skipped_binary': 0,
            'skipped_large': 0,
            'read_errors': 0,
        }
        stamp = (generated_on or datetime.now()).strftime(TIMESTAMP_FORMAT)
        self._append(f"{DIGEST_TITLE}\nGenerated on {stamp}\n\n")

    def _append(self, text):
        self._buffer.write(text)
        self.size_bytes += len(text.encode('utf-8'))

    @property
    def text(self):
        return self._buffer.getvalue()

    @property
    def file_count(self):
        return len(self.sections)

    @property
    def is_empty(self):
        return not self.sections and not self.tree_count

    def add_tree(self, diagram):
        self._append(f"## Directory Structure\n\n```\n{diagram}\n```\n\n")
        self.tree_count += 1

    def add_contents_heading(self):
        self._append("## Contents\n\n")

    def add_file(self, relative_path, tag, content):
        """Append one file section.

        ``content`` is written unchanged, except that a newline is added when
        it lacks a final one so the closing fence starts its own line.
        """
        if content and not content.endswith('\n'):
            content += '\n'
        self._append(f"## {relative_path}\n\n```{tag}\n{content}```\n\n")
        self.sections.append(relative_path)


def _read_candidate(candidate):
    try:
        raw = candidate.path.read_bytes()
    except OSError as exc:
        raise ReadError(f"Could not read {candidate.path}: {exc}") from exc
    return decode_best_effort(raw, source=candidate.path)


def assemble(
    roots,
    ignore_set,
    size_limit_bytes,
    *,
    tree_renderer=render_tree,
    probe=classify_content,
    use_gitignore=False,
    exclude=(),
    generated_on=None,
):
    """Build the digest for ``roots`` and return a :class:`DigestDocument`.

    Roots are processed in the order given. The size limit is checked after
    each file is appended; crossing it raises :class:`SizeLimitExceeded`
    carrying the partial document. Files larger than half the limit are
    skipped up front. :class:`EmptyResult` is raised when no file section
    and no tree diagram was produced.
    """
    document = DigestDocument(generated_on)
    max_file_bytes = size_limit_bytes // 2 if size_limit_bytes > 0 else None

    for root in roots:
        root_path = Path(root)
        root_ignores = ignore_set
        if use_gitignore:
            gitignore_path = find_gitignore(root_path)
            if gitignore_path is not None:
                root_ignores = ignore_set.extended(
                    gitignore_ignores(root_path, gitignore_path)
                )

        candidates = list(
            walk(
                root_path,
                root_ignores,
                max_file_bytes=max_file_bytes,
                probe=probe,
                exclude=exclude,
                stats=document.stats,
            )
        )
        logging.debug("%s: %d candidate files", root_path, len(candidates))

        if root_path.is_dir() and tree_renderer is not None and candidates:
            document.add_tree(
                tree_renderer(root_path, [c.relative_path for c in candidates])
            )
        document.add_contents_heading()

        with tqdm(
            candidates,
            desc=f"Digesting {root_path}",
            unit="file",
            leave=False,
            disable=not _progress_enabled(),
        ) as bar:
            for candidate in bar:
                try:
                    content = _read_candidate(candidate)
                except ReadError as exc:
                    logging.warning("%s. Skipping.", exc)
                    document.stats['read_errors'] += 1
                    continue

                heading = candidate.relative_path.as_posix()
                if root_path.is_file() and heading in document.sections:
                    # Same base name as an earlier file root.
                    heading = root_path.as_posix()
                document.add_file(heading, candidate.tag, content)
                logging.debug("Added %s", heading)

                if document.size_bytes > size_limit_bytes:
                    raise SizeLimitExceeded(
                        f"Digest size {document.size_bytes} bytes exceeds the "
                        f"limit of {size_limit_bytes} bytes after "
                        f"{candidate.relative_path.as_posix()}.",
                        document,
                    )

    if document.is_empty:
        raise EmptyResult("No files qualified for inclusion in the digest.", document)
    return document


# Delivery

def resolve_clipboard_sink():
    """Return a callable that copies text to the system clipboard."""
    copy, _paste = pyperclip.determine_clipboard()
    if not copy:
        raise ConfigurationError(
            "No clipboard mechanism is available. Install xclip, xsel or "
            "wl-clipboard, or use --output to write the digest to a file."
        )
    return copy


def file_sink(path):
    """Return a sink that writes the digest to ``path``."""
    target = Path(path)

    def _write(text):
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding='utf-8')

    return _write


def preserve_document(text, path=None):
    """Write ``text`` to ``path`` (or a fresh temp file) and return its location."""
    if path is None:
        fd, name = tempfile.mkstemp(prefix=FALLBACK_PREFIX, suffix=".md")
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(text)
        return Path(name)

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding='utf-8')
    return target


def deliver(document, sink, *, fallback_path=None):
    """Hand ``document`` to ``sink``, preserving it on failure."""
    text = document.text
    try:
        sink(text)
    except Exception as exc:
        # Any sink failure, not only pyperclip's, must leave a saved copy.
        try:
            saved = preserve_document(text, fallback_path)
        except OSError as save_exc:
            logging.warning("Could not preserve the digest: %s", save_exc)
            saved = None
        raise DeliveryError(f"Could not deliver the digest: {exc}", saved) from exc
    logging.debug("Delivered %d bytes.", document.size_bytes)


# CLI

def _non_negative_float(value):
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not a number")
    if number < 0:
        raise argparse.ArgumentTypeError("the maximum size cannot be negative")
    return number


def _build_parser():
    parser = argparse.ArgumentParser(
        prog="aidigest",
        description=(
            "Bundle files and directories into a single markdown digest and "
            "copy it to the clipboard. Handy for sharing code with an LLM."
        ),
    )
    parser.add_argument(
        "paths",
        nargs="*",
        default=["."],
        help="Files or directories to include (default: current directory).",
    )

    filter_group = parser.add_argument_group("Filtering")
    filter_group.add_argument(
        "-i",
        "--ignore",
        action="append",
        default=[],
        metavar="PATTERN",
        help=(
            "Ignore paths matching PATTERN. Globs (*, ?, []) match file and "
            "folder names; anything else matches any path containing it. "
            "Can be used multiple times."
        ),
    )
    filter_group.add_argument(
        "-g",
        "--gitignore",
        action="store_true",
        help="Also ignore entries from the nearest .gitignore of each path.",
    )
    filter_group.add_argument(
        "-m",
        "--max-size",
        type=_non_negative_float,
        metavar="MB",
        help=f"Maximum digest size in megabytes (default: {digest_utils.DEFAULT_MAX_SIZE_MB}).",
    )

    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument(
        "-o",
        "--output",
        help="Write the digest to this file instead of the clipboard.",
    )
    output_group.add_argument(
        "--fallback",
        metavar="FILE",
        help="Where to save the digest if it cannot be delivered (default: a temp file).",
    )
    output_group.add_argument(
        "--no-tree",
        action="store_true",
        help="Leave out the directory structure sections.",
    )

    runtime_group = parser.add_argument_group("Runtime Options")
    runtime_group.add_argument(
        "-c",
        "--config",
        help="YAML file with settings. Command-line options take precedence.",
    )
    runtime_group.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show debug logging.",
    )
    runtime_group.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def _load_config(args):
    """Return the effective configuration: defaults, then YAML, then flags."""
    if args.config:
        config = load_and_validate_config(args.config)
    else:
        config = validate_config({}, defaults=DEFAULT_CONFIG)

    filters = config['filters']
    for pattern in args.ignore:
        filters['ignore_patterns'].append(
            validate_glob_pattern(pattern, context="CLI --ignore")
        )
    if args.ignore:
        logging.debug("Added CLI ignore patterns: %s", args.ignore)
    if args.gitignore:
        filters['use_gitignore'] = True
    if args.max_size is not None:
        config['limits']['max_size_mb'] = args.max_size
    if args.output:
        config['output']['file'] = args.output
    if args.fallback:
        config['output']['fallback_file'] = args.fallback
    if args.no_tree:
        config['output']['tree'] = False
    return config


def _resolve_roots(paths):
    roots = []
    for raw in paths:
        path = Path(raw)
        if not path.exists():
            raise ConfigurationError(f"Path '{raw}' does not exist.")
        if not (path.is_file() or path.is_dir()):
            raise ConfigurationError(f"Path '{raw}' is neither a file nor a directory.")
        roots.append(path)
    return roots


def _format_size(size_bytes):
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.2f} KB"
    return f"{size_bytes / (1024 * 1024):.2f} MB"


def _print_execution_summary(document, destination, title="Execution Summary"):
    stats = document.stats
    print(f"\n--- {title} ---", file=sys.stderr)
    print(f"  Files Included:   {document.file_count}", file=sys.stderr)
    if stats['ignored']:
        print(f"  Ignored Entries:  {stats['ignored']}", file=sys.stderr)
    if stats['skipped_binary']:
        print(f"  Binary Skipped:   {stats['skipped_binary']}", file=sys.stderr)
    if stats['skipped_large']:
        print(f"  Too Large:        {stats['skipped_large']}", file=sys.stderr)
    if stats['read_errors']:
        print(f"  Read Errors:      {stats['read_errors']}", file=sys.stderr)
    print(f"  Digest Size:      {_format_size(document.size_bytes)}", file=sys.stderr)
    print(f"  Destination:      {destination}", file=sys.stderr)
    print("-" * (len(title) + 8), file=sys.stderr)


def main(argv=None):
    """Parse arguments, build the digest and deliver it."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(logging.DEBUG if args.debug else logging.INFO)

    try:
        config = _load_config(args)
    except ConfigNotFoundError as exc:
        logging.error("%s Current working directory: %s", exc, Path.cwd())
        sys.exit(1)
    except ConfigurationError as exc:
        logging.error("Invalid configuration: %s", exc)
        logging.debug("Configuration validation traceback:", exc_info=True)
        sys.exit(1)

    # -d always overrides the configured level.
    if not args.debug:
        level_str = config['logging']['level']
        logging.getLogger().setLevel(getattr(logging, level_str.upper(), logging.INFO))

    output_conf = config['output']
    output_file = output_conf.get('file')
    fallback_file = output_conf.get('fallback_file')

    try:
        roots = _resolve_roots(args.paths)
        if output_file:
            sink = file_sink(output_file)
            destination = f"'{output_file}'"
        else:
            sink = resolve_clipboard_sink()
            destination = "clipboard"
    except ConfigurationError as exc:
        logging.error("%s", exc)
        sys.exit(1)

    ignore_set = IgnoreSet.from_config(config)
    size_limit = mb_to_bytes(config['limits']['max_size_mb'])
    exclude = [p for p in (output_file, fallback_file) if p]

    logging.debug("Roots: %s", ", ".join(str(r) for r in roots))
    logging.debug("Ignore patterns: %s", ", ".join(p.text for p in ignore_set))

    try:
        document = assemble(
            roots,
            ignore_set,
            size_limit,
            tree_renderer=render_tree if output_conf['tree'] else None,
            use_gitignore=config['filters']['use_gitignore'],
            exclude=exclude,
        )
    except SizeLimitExceeded as exc:
        logging.error("%s", exc)
        try:
            saved = preserve_document(exc.document.text, fallback_file)
        except OSError as save_exc:
            logging.error("Could not save the partial digest: %s", save_exc)
        else:
            logging.error("Partial digest saved to %s", saved)
        logging.error("Raise the limit with --max-size or narrow the input with --ignore.")
        sys.exit(1)
    except EmptyResult as exc:
        logging.error("%s Check your paths and ignore patterns.", exc)
        sys.exit(1)

    try:
        deliver(document, sink, fallback_path=fallback_file)
    except DeliveryError as exc:
        logging.error("%s", exc)
        if exc.fallback_path is not None:
            logging.error("Digest saved to %s", exc.fallback_path)
        _print_execution_summary(document, destination, title="Delivery Failed")
        sys.exit(1)

    logging.info(
        "Sent digest of %d files to %s.", document.file_count, destination
    )
    _print_execution_summary(document, destination)


if __name__ == "__main__":
    main()
