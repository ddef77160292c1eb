import importlib.util
import os
import sys
from typing import Optional

from . import logs
from .config import RuntimeConfig
from .errors import HandlerLoadError
from .runtime import Handler, report_init_error, start


def _same_file(a: Optional[str], b: str) -> bool:
    return a is not None and os.path.realpath(a) == os.path.realpath(b)


def load_handler(handler_string: str, root: Optional[str] = None) -> Handler:
    """Import `module.function` from a file under root (default: the working directory)"""
    module_name, _, function_name = handler_string.rpartition('.')
    if not module_name or not function_name:
        raise HandlerLoadError(f'Bad handler format: {handler_string!r}, expected module.function')

    root = root or os.getcwd()
    module_path = os.path.join(root, *module_name.split('.')) + '.py'
    if not os.path.isfile(module_path):
        raise HandlerLoadError(f'Could not find module {module_name!r} at {module_path}')

    existing = sys.modules.get(module_name)
    if existing is not None and not _same_file(getattr(existing, '__file__', None), module_path):
        raise HandlerLoadError(
            f'Module name {module_name!r} is already taken by {existing!r}; rename {module_path}')

    if root not in sys.path:
        sys.path.insert(0, root)
    spec = importlib.util.spec_from_file_location(module_name, module_path)
    if not spec or not spec.loader:
        raise HandlerLoadError(f'Could not load module: {module_name}')

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        del sys.modules[module_name]
        raise HandlerLoadError(f'Importing {module_name} failed: {type(e).__name__}: {e}') from e

    handler = getattr(module, function_name, None)
    if handler is None:
        raise HandlerLoadError(f'Handler {function_name!r} missing on module {module_name!r}')
    if not callable(handler):
        raise HandlerLoadError(f'Handler {handler_string} is not callable')
    return handler


def main(config: Optional[RuntimeConfig] = None) -> int:
    if config is None:
        config = RuntimeConfig.from_env()
    logs.configure(config.log_level)
    logger = logs.get_logger('bootstrap')
    logs.log_event(logger, 'info', 'Runtime initialization started', handler=config.handler)

    try:
        handler = load_handler(config.handler, root=config.task_root)
    except HandlerLoadError as e:
        report_init_error(config, e)
        print(f'Failed to load handler: {e}', file=sys.stderr)
        return 1

    logs.log_event(logger, 'info', 'Runtime initialization completed successfully',
                   handler=config.handler)
    start(handler, config=config)
    return 0
