"""Loading user modules and resolving the conventions to apply to them."""

import importlib
import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Optional, Sequence

from conventest.core.convention import Convention, DefaultConvention
from conventest.exceptions import CommandLineError

log = logging.getLogger(__name__)


def load_module(target: Path | str) -> ModuleType:
    """Import a module from a file path or a dotted module name.

    A file's directory is put on ``sys.path`` so the module can import its
    siblings. A file named like an importable module is refused.
    """
    path = Path(target)
    if path.suffix == ".py" or path.is_file():
        if not path.is_file():
            raise CommandLineError(f"Test module not found: {path}")

        path = path.resolve()
        module_name = path.stem
        _check_not_shadowing(module_name, path)

        directory = str(path.parent)
        if directory not in sys.path:
            sys.path.insert(0, directory)

        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise CommandLineError(f"Cannot load test module: {path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise
        log.debug("Loaded %s from %s", module_name, path)
        return module

    try:
        return importlib.import_module(str(target))
    except ModuleNotFoundError as e:
        if e.name == str(target):
            raise CommandLineError(f"Test module not found: {target}") from e
        raise


def _check_not_shadowing(module_name: str, path: Path) -> None:
    """Refuse a test file whose name belongs to another importable module.

    Test files are registered under their bare name, so ``json.py`` would
    otherwise replace the real ``json`` for the rest of the process.
    """
    existing = sys.modules.get(module_name)
    if existing is not None:
        origin = getattr(existing, "__file__", None)
    else:
        spec = None if "." in module_name else importlib.util.find_spec(module_name)
        if spec is None:
            return
        origin = spec.origin

    if origin is None or Path(origin).resolve() != path:
        raise CommandLineError(
            f"Test module {path.name} has the same name as the module {module_name!r}; rename it"
        )


def import_object(path: str) -> object:
    """Import ``package.module:Name`` (or ``package.module.Name``)."""
    if ":" in path:
        module_name, _, attribute = path.partition(":")
    else:
        module_name, _, attribute = path.rpartition(".")

    if not module_name or not attribute:
        raise CommandLineError(f"Expected 'module:Name', got {path!r}")

    module = importlib.import_module(module_name)
    try:
        return getattr(module, attribute)
    except AttributeError as e:
        raise CommandLineError(f"{module_name} has no attribute {attribute!r}") from e


def resolve_conventions(
    module: ModuleType,
    convention_path: Optional[str] = None,
    arguments: Sequence[str] = (),
) -> list[Convention]:
    """Pick the conventions to apply to ``module``.

    An explicit ``convention_path`` wins. Otherwise every ``Convention``
    subclass defined in the module is used, in definition order, falling back
    to ``DefaultConvention``.
    """
    if convention_path:
        convention_types = [import_object(convention_path)]
    else:
        convention_types = [
            value
            for value in vars(module).values()
            if isinstance(value, type)
            and issubclass(value, Convention)
            and value.__module__ == module.__name__
            and not inspect.isabstract(value)
        ]

    if not convention_types:
        return [DefaultConvention()]

    conventions = []
    for convention_type in convention_types:
        if not (isinstance(convention_type, type) and issubclass(convention_type, Convention)):
            raise CommandLineError(f"{convention_type!r} is not a Convention subclass")
        conventions.append(construct_convention(convention_type, arguments))
        log.debug("Using convention %s", convention_type.__name__)
    return conventions


def construct_convention(convention_type: type, arguments: Sequence[str] = ()) -> Convention:
    """Instantiate a convention, passing custom arguments when it accepts them."""
    parameters = inspect.signature(convention_type).parameters
    if "arguments" in parameters:
        return convention_type(arguments=tuple(arguments))
    return convention_type()
