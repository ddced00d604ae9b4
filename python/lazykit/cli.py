from __future__ import annotations

import importlib
import importlib.util
import logging
import os
import sys
from types import TracebackType
from typing import Any, Iterable, Mapping, Optional, cast

from .activators import chains, describe_activator, rollup
from .containers import keys, lazy, snapshot
from .errors import ActivatorLoadError, InvalidActivatorError
from .runtime import helpers

_USAGE = "lazykit [options] <module:attr>..."
_DESCRIPTION = "Resolve lazy containers built from activator maps"
_BOOLEAN_FLAGS = frozenset("jcTvh")
_VALUE_FLAGS = frozenset("ksqL")
_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))

_log = logging.getLogger(__name__)


def _is_internal(filename: str, internal_files: set[str]) -> bool:
    if filename in internal_files:
        return True
    if not os.path.isabs(filename):
        return False
    path = os.path.abspath(filename)
    return path in internal_files or path.startswith(_PACKAGE_DIR + os.sep)


def _trim_internal_frames(stack, internal_files: set[str]) -> None:
    if not stack:
        return
    kept = [frame for frame in stack if not _is_internal(frame.filename, internal_files)]
    if 0 < len(kept) < len(stack):
        stack[:] = kept


def _trim_traceback_exception(tb_exc, internal_files: set[str]) -> None:
    _trim_internal_frames(tb_exc.stack, internal_files)
    cause = getattr(tb_exc, "__cause__", None)
    if cause is not None:
        _trim_traceback_exception(cause, internal_files)
    context = getattr(tb_exc, "__context__", None)
    if context is not None:
        _trim_traceback_exception(context, internal_files)
    for group_exc in getattr(tb_exc, "exceptions", ()) or ():
        _trim_traceback_exception(group_exc, internal_files)


def _install_trimmed_excepthook() -> None:
    internal_files = {os.path.abspath(sys.argv[0])}
    original_excepthook = sys.excepthook

    def _lazykit_excepthook(
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is KeyboardInterrupt:
            return original_excepthook(exc_type, exc, tb)
        import traceback

        tb_exc = traceback.TracebackException(exc_type, exc, tb, capture_locals=False)
        _trim_traceback_exception(tb_exc, internal_files)
        for line in cast(Iterable[str], tb_exc.format()):
            sys.stderr.write(line)

    sys.excepthook = _lazykit_excepthook


class _Args:
    def __init__(self) -> None:
        self.maps: list[str] = []
        self.keys: list[str] = []
        self.overrides: list[str] = []
        self.query: Optional[str] = None
        self.json: Optional[bool] = None
        self.chains = False
        self.threadsafe: Optional[bool] = None
        self.log_level: Optional[str] = None
        self.version = False
        self.help = False


def _print_help(file=None) -> None:
    if file is None:
        file = sys.stdout
    print(f"usage: {_USAGE}", file=file)
    print("", file=file)
    print(_DESCRIPTION, file=file)
    print("", file=file)
    print("Each map is <module>:<attr> or <file.py>:<attr>; later maps decorate", file=file)
    print("earlier ones.", file=file)
    print("", file=file)
    print("options:", file=file)
    print("  -k, --key <name>        property to print (repeatable, default: all)", file=file)
    print(
        "  -s, --set <key>=<value>  override a property with a constant (repeatable)",
        file=file,
    )
    print("  -q, --query <expr>      print the result of a JMESPath query", file=file)
    print("  -j, --json              print properties as a JSON object", file=file)
    print("  -c, --chains            print the layers behind each key, do not evaluate", file=file)
    print("  -T, --threadsafe        lock each property during first evaluation", file=file)
    print("  -L, --log-level <level> logging level (default: $LAZYKIT_LOG_LEVEL)", file=file)
    print("  -v, --version           show version and exit", file=file)
    print("  -h, --help              show this help message and exit", file=file)


def _expand_short_options(argv: list[str]) -> list[str]:
    expanded: list[str] = []
    idx = 0
    while idx < len(argv):
        token = argv[idx]
        if token == "--":
            expanded.extend(argv[idx:])
            return expanded
        if token == "-" or not token.startswith("-") or token.startswith("--"):
            expanded.append(token)
            idx += 1
            continue
        if len(token) == 2:
            expanded.append(token)
            idx += 1
            continue

        flags = token[1:]
        pos = 0
        while pos < len(flags):
            flag = flags[pos]
            if flag in _BOOLEAN_FLAGS:
                expanded.append(f"-{flag}")
                pos += 1
                continue
            if flag in _VALUE_FLAGS:
                remainder = flags[pos + 1 :]
                expanded.append(f"-{flag}")
                if remainder:
                    expanded.append(remainder)
                break
            raise ValueError(f"unknown option: -{flag}")
        idx += 1
    return expanded


def _take_value(argv: list[str], idx: int, token: str) -> str:
    if idx + 1 >= len(argv):
        raise ValueError(f"option {token} requires an argument")
    return argv[idx + 1]


def _parse_args(argv: list[str]) -> _Args:
    argv = _expand_short_options(argv)
    args = _Args()
    idx = 0
    while idx < len(argv):
        token = argv[idx]
        if token == "--":
            args.maps.extend(argv[idx + 1 :])
            return args
        if not token.startswith("-"):
            args.maps.append(token)
            idx += 1
            continue
        if token in ("-h", "--help"):
            args.help = True
            return args
        if token in ("-v", "--version"):
            args.version = True
            idx += 1
            continue
        if token in ("-j", "--json"):
            args.json = True
            idx += 1
            continue
        if token in ("-c", "--chains"):
            args.chains = True
            idx += 1
            continue
        if token in ("-T", "--threadsafe"):
            args.threadsafe = True
            idx += 1
            continue
        if token in ("-k", "--key"):
            args.keys.append(_take_value(argv, idx, token))
            idx += 2
            continue
        if token in ("-s", "--set"):
            override = _take_value(argv, idx, token)
            if "=" not in override or override.startswith("="):
                raise ValueError(f"option {token} expects <key>=<value>, got {override!r}")
            args.overrides.append(override)
            idx += 2
            continue
        if token in ("-q", "--query"):
            args.query = _take_value(argv, idx, token)
            idx += 2
            continue
        if token in ("-L", "--log-level"):
            args.log_level = _take_value(argv, idx, token)
            idx += 2
            continue
        raise ValueError(f"unknown option: {token}")
    return args


def _get_version() -> str:
    from . import __version__ as version

    return version


def _format_version(version: str) -> str:
    return version if version.startswith("v") else f"v{version}"


def _format_python_runtime() -> str:
    version = (
        f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    )
    executable = sys.executable or "<unknown>"
    if executable != "<unknown>":
        executable = os.path.abspath(executable)
    return f"Python {version} ({executable})"


def _import_target(target: str):
    if target.endswith(".py"):
        path = os.path.abspath(target)
        stem = os.path.splitext(os.path.basename(path))[0]
        module_name = f"_lazykit_map_{stem}_{abs(hash(path)):x}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ActivatorLoadError(f"cannot load {target}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except OSError as exc:
            sys.modules.pop(module_name, None)
            raise ActivatorLoadError(f"failed to read {target}: {exc}") from exc
        except Exception as exc:
            sys.modules.pop(module_name, None)
            raise ActivatorLoadError(
                f"failed to load {target}: {type(exc).__name__}: {exc}"
            ) from exc
        return module
    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)
    try:
        return importlib.import_module(target)
    except ModuleNotFoundError as exc:
        if exc.name is None or not (target == exc.name or target.startswith(exc.name + ".")):
            raise
        raise ActivatorLoadError(f"no module named {target!r}") from exc


def load_activator_map(spec: str) -> Mapping[str, Any]:
    """Load the activator map named by ``<module>:<attr>`` or ``<file.py>:<attr>``."""
    target, sep, attr_path = spec.rpartition(":")
    if not sep or not target or not attr_path:
        raise ActivatorLoadError(
            f"expected <module>:<attr> or <file.py>:<attr>, got {spec!r}"
        )
    value: Any = _import_target(target)
    for attr in attr_path.split("."):
        try:
            value = getattr(value, attr)
        except AttributeError as exc:
            raise ActivatorLoadError(f"{target} has no attribute {attr_path!r}") from exc
    if not isinstance(value, Mapping):
        raise ActivatorLoadError(
            f"{spec} is not an activator map (got {type(value).__name__})"
        )
    _log.debug("loaded %s with %d activators", spec, len(value))
    return value


def _constant(value: Any):
    def constant(_resolved: Any) -> Any:
        return value

    return constant


def _override_map(overrides: list[str]) -> dict[str, Any]:
    parse_value = helpers.parse_value
    result: dict[str, Any] = {}
    for override in overrides:
        key, _, raw = override.partition("=")
        result[key] = _constant(parse_value(raw))
    return result


def _format_plain(value: Any) -> str:
    if isinstance(value, str):
        return value
    return helpers.to_json(value)


def _configure_logging(level: int) -> None:
    logging.basicConfig(
        stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s"
    )
    logging.getLogger("lazykit").setLevel(level)


def main(argv: Optional[list[str]] = None) -> int:
    if argv is None:
        _install_trimmed_excepthook()
        argv = sys.argv[1:]

    try:
        namespace = _parse_args(argv)
    except ValueError as exc:
        _print_help(file=sys.stderr)
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if namespace.help:
        _print_help()
        return 0
    if namespace.version:
        print(_format_version(_get_version()))
        print(_format_python_runtime())
        return 0

    config = helpers.EnvConfig()
    try:
        if namespace.log_level is not None:
            level = helpers.parse_log_level(namespace.log_level)
        else:
            level = config.log_level
        threadsafe = config.threadsafe if namespace.threadsafe is None else namespace.threadsafe
        json_output = config.json_output if namespace.json is None else namespace.json
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    _configure_logging(level)

    if not namespace.maps and not namespace.overrides:
        print("no activator maps provided", file=sys.stderr)
        return 1

    try:
        maps = [load_activator_map(spec) for spec in namespace.maps]
    except ActivatorLoadError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    if namespace.overrides:
        maps.append(_override_map(namespace.overrides))
    try:
        activators = rollup(*maps)
        container = lazy(activators, threadsafe=threadsafe)
    except InvalidActivatorError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if namespace.chains:
        for key, layers in chains(activators).items():
            print(f"{key}: {' -> '.join(describe_activator(layer) for layer in layers)}")
        return 0

    names = namespace.keys or list(keys(container))
    unknown = [name for name in names if name not in activators]
    if unknown:
        print(f"error: unknown property: {', '.join(unknown)}", file=sys.stderr)
        return 1

    if namespace.query is not None:
        print(helpers.to_json(helpers.query(container, namespace.query, names), indent=2))
        return 0
    if json_output:
        print(helpers.to_json(snapshot(container, names), indent=2))
        return 0
    for name in names:
        print(f"{name} = {_format_plain(getattr(container, name))}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
