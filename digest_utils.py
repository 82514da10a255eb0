import copy
import logging
import numbers
import re

from charset_normalizer import from_bytes
import yaml


DEFAULT_MAX_SIZE_MB = 10
BINARY_SAMPLE_BYTES = 8192
FALLBACK_PREFIX = "ai-digest-"

CONTENT_BINARY = 'binary'
CONTENT_SHELL = 'shell script'
CONTENT_TEXT = 'text'

DEFAULT_IGNORE_PATTERNS = (
    '.*',
    'node_modules',
    '__pycache__',
    '*.pyc',
    '*.lock',
    'package-lock.json',
)

DEFAULT_CONFIG = {
    'logging': {
        'level': 'INFO',
    },
    'filters': {
        'ignore_patterns': [],
        'use_default_ignores': True,
        'use_gitignore': False,
    },
    'limits': {
        'max_size_mb': DEFAULT_MAX_SIZE_MB,
    },
    'output': {
        'file': None,
        'tree': True,
        'fallback_file': None,
    },
}

_LOG_LEVELS = ('CRITICAL', 'ERROR', 'WARNING', 'INFO', 'DEBUG')

# Allowed control characters: backspace, tab, LF, form feed, CR, escape.
_TEXT_CONTROL_BYTES = frozenset((8, 9, 10, 12, 13, 27))

_SHELL_SHEBANG_RE = re.compile(
    rb'#!\s*(?:\S*/)?(?:env\s+(?:-\S+\s+)*)?\w*sh\b'
)


class ConfigurationError(Exception):
    """Raised for invalid arguments, settings, or a missing delivery sink."""


class ConfigNotFoundError(ConfigurationError, FileNotFoundError):
    """Raised when the configuration file cannot be found."""


class InvalidConfigError(ConfigurationError):
    """Raised when the configuration file is invalid."""


def load_yaml_config(config_file_path):
    """Load a YAML configuration file with basic error handling."""
    logging.info("Loading configuration from: %s", config_file_path)
    try:
        with open(config_file_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
            if config is None:
                raise ValueError("Configuration file is empty or invalid.")
            if not isinstance(config, dict):
                raise ValueError("Configuration file must contain a mapping at the top level.")
            return config
    except FileNotFoundError as e:
        raise ConfigNotFoundError(
            f"Configuration file not found at '{config_file_path}'."
        ) from e
    except yaml.YAMLError as e:
        mark = getattr(e, 'problem_mark', None)
        location = ""
        if mark:
            location = f" at line {mark.line + 1}, column {mark.column + 1}"

        problem = getattr(e, 'problem', None) or str(e)
        context = getattr(e, 'context', None)
        details = f"{context}: {problem}" if context else problem

        hint = None
        if isinstance(e, yaml.scanner.ScannerError) and context:
            if 'quoted scalar' in context:
                hint = "Check for missing closing quotes in your YAML file."

        message = f"Error parsing YAML file{location}: {details}"
        if hint:
            message = f"{message} ({hint})"

        raise InvalidConfigError(message) from e
    except ValueError as e:
        raise InvalidConfigError(str(e)) from e


def read_sample(file_path, size=BINARY_SAMPLE_BYTES):
    """Return up to ``size`` leading bytes of ``file_path``."""
    with open(file_path, 'rb') as f:
        return f.read(size)


def has_shell_shebang(content):
    """Return ``True`` when the first line is a ``#!`` for an ``*sh`` shell."""
    if isinstance(content, str):
        content = content.encode('utf-8', errors='replace')
    first_line = content.split(b'\n', 1)[0]
    return bool(_SHELL_SHEBANG_RE.match(first_line))


def looks_binary(sample):
    """Guess whether ``sample`` holds binary data.

    A NUL byte is treated as conclusive. Otherwise the sample is binary when
    more than 30% of its bytes are control characters that do not show up
    in ordinary text.
    """
    if not sample:
        return False
    if b'\x00' in sample:
        return True
    control = sum(
        1 for byte in sample if byte < 32 and byte not in _TEXT_CONTROL_BYTES
    )
    return control / len(sample) > 0.3


def classify_content(sample):
    """Classify ``sample`` as binary data, a shell script, or plain text."""
    if looks_binary(sample):
        return CONTENT_BINARY
    if has_shell_shebang(sample):
        return CONTENT_SHELL
    return CONTENT_TEXT


def decode_best_effort(raw_bytes, *, source=None):
    """Decode ``raw_bytes`` trying several encodings.

    UTF-8 (with BOM handling) is tried first, then ``charset-normalizer`` is
    asked for a likely encoding before falling back to a permissive UTF-8
    decode with replacements. ``source`` only names the file in log output.
    """

    def _strip_bom(text):
        return text.lstrip('\ufeff')

    try:
        return _strip_bom(raw_bytes.decode('utf-8-sig'))
    except UnicodeDecodeError:
        pass

    best_guess = from_bytes(raw_bytes).best()
    if best_guess and best_guess.encoding:
        encoding = best_guess.encoding
        if (
            encoding.lower().startswith('utf_16')
            and b'\x00' not in raw_bytes
            and len(raw_bytes) < 6
        ):
            encoding = 'latin-1'
        try:
            return _strip_bom(raw_bytes.decode(encoding, errors='replace'))
        except LookupError:
            logging.warning(
                "Detected encoding '%s' is not supported.", best_guess.encoding
            )

    logging.warning(
        "Could not detect encoding for %s; decoding with UTF-8 replacements.",
        source or "<bytes>",
    )
    return _strip_bom(raw_bytes.decode('utf-8', errors='replace'))


def validate_glob_pattern(pattern, *, context="ignore pattern"):
    """Check an ignore pattern and return its normalized form.

    Non-string and empty patterns are rejected: an empty substring would
    match every path. Suspicious patterns only produce warnings.
    """
    if not isinstance(pattern, str):
        raise InvalidConfigError(
            f"Ignore pattern in {context} must be a string, but got: {type(pattern).__name__}"
        )
    if not pattern.strip():
        raise InvalidConfigError(
            f"Ignore pattern in {context} must not be empty."
        )

    normalized = pattern
    if '\\' in pattern:
        normalized = pattern.replace('\\', '/')
        normalized = re.sub(r'/+', '/', normalized)
        logging.warning(
            "Ignore pattern in %s ('%s') uses backslashes; treating them as '/' for cross-platform matching.",
            context,
            pattern,
        )

    if normalized.count('[') != normalized.count(']'):
        logging.warning(
            "Ignore pattern in %s ('%s') has mismatched brackets '[' and ']'. "
            "This may cause unexpected matching behavior.",
            context,
            pattern,
        )

    return normalized


def _require_mapping(config, key):
    section = config.get(key)
    if not isinstance(section, dict):
        raise InvalidConfigError(f"'{key}' section must be a dictionary.")
    return section


def _require_bool(section, key, *, context):
    value = section.get(key)
    if not isinstance(value, bool):
        raise InvalidConfigError(f"'{context}.{key}' must be a boolean value")


def _validate_logging_section(config):
    logging_conf = _require_mapping(config, 'logging')
    level = logging_conf.get('level')
    if not isinstance(level, str) or level.upper() not in _LOG_LEVELS:
        raise InvalidConfigError(
            f"'logging.level' must be one of: {', '.join(_LOG_LEVELS)}"
        )


def _validate_filters_section(config):
    filters = _require_mapping(config, 'filters')

    patterns = filters.get('ignore_patterns')
    if patterns is None:
        patterns = []
        filters['ignore_patterns'] = patterns
    if not isinstance(patterns, list):
        raise InvalidConfigError("'filters.ignore_patterns' must be a list of strings.")
    for i, pattern in enumerate(patterns):
        sanitized = validate_glob_pattern(
            pattern, context=f"filters.ignore_patterns[{i}]"
        )
        if sanitized != pattern:
            patterns[i] = sanitized

    _require_bool(filters, 'use_default_ignores', context='filters')
    _require_bool(filters, 'use_gitignore', context='filters')


def _validate_limits_section(config):
    limits = _require_mapping(config, 'limits')
    max_size = limits.get('max_size_mb')
    if (
        isinstance(max_size, bool)
        or not isinstance(max_size, numbers.Real)
        or max_size < 0
    ):
        raise InvalidConfigError(
            "'limits.max_size_mb' must be a number greater than or equal to 0."
        )


def _validate_output_section(config):
    output_conf = _require_mapping(config, 'output')
    _require_bool(output_conf, 'tree', context='output')
    for key in ('file', 'fallback_file'):
        value = output_conf.get(key)
        if value is not None and not isinstance(value, str):
            raise InvalidConfigError(f"'output.{key}' must be a string or null.")


def validate_config(config, *, defaults=DEFAULT_CONFIG, source=None):
    """Merge ``defaults`` into ``config`` and validate every section.

    ``defaults`` may contain nested dictionaries, which are merged
    recursively. Default values are deep-copied so callers can mutate the
    result without touching ``DEFAULT_CONFIG``.
    """

    def apply_defaults(cfg, defs):
        for key, value in defs.items():
            if isinstance(value, dict):
                node = cfg.setdefault(key, {})
                if node is None:
                    node = cfg[key] = {}
                if isinstance(node, dict):
                    apply_defaults(node, value)
            else:
                cfg.setdefault(key, copy.deepcopy(value))

    if defaults:
        apply_defaults(config, defaults)

    try:
        _validate_logging_section(config)
        _validate_filters_section(config)
        _validate_limits_section(config)
        _validate_output_section(config)
    except InvalidConfigError as exc:
        if source:
            raise InvalidConfigError(f"{exc} (from '{source}')") from exc
        raise

    return config


def load_and_validate_config(config_file_path, defaults=DEFAULT_CONFIG):
    """Load a YAML config file and apply defaults and validation."""
    config = load_yaml_config(config_file_path)
    return validate_config(config, defaults=defaults, source=config_file_path)


def mb_to_bytes(size_mb):
    """Convert a megabyte figure to a whole number of bytes."""
    return int(size_mb * 1024 * 1024)
