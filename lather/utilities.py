"""
Shared utilities of the lather package.

Functions:
- default_logger_format(logger: logging.Logger, level: int = logging.INFO) -> logging.Logger:
    Gives a logger the package format and the custom PRINT level.

- time_function(func):
    Decorator logging the runtime of the function.

- progress_tracker(func):
    Decorator logging start and end of the function.

- save_and_load(func):
    Decorator caching the output of the function into a pickle file (dill).
"""
#%% Importing libraries
import functools
import logging
import os
import time

import dill as pickle

#%% Custom logging level
PRINT_LEVEL = 25
logging.addLevelName(PRINT_LEVEL, 'PRINT')


def _print(self, message, *args, **kwargs):
    if self.isEnabledFor(PRINT_LEVEL):
        self._log(PRINT_LEVEL, message, args, **kwargs)


logging.Logger.print = _print  # type: ignore


class _ColorFormatter(logging.Formatter):
    """
    Formatter coloring the level name of the record.
    """
    COLORS = {
        logging.DEBUG: '\x1b[38;5;244m',
        logging.INFO: '\x1b[38;5;39m',
        PRINT_LEVEL: '\x1b[38;5;40m',
        logging.WARNING: '\x1b[38;5;226m',
        logging.ERROR: '\x1b[38;5;196m',
        logging.CRITICAL: '\x1b[31;1m',
    }
    RESET = '\x1b[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelno, self.RESET)
        record.levelname_colored = f'{color}{record.levelname}{self.RESET}'
        return super().format(record)


#%% Default logger format
def default_logger_format(logger: logging.Logger,
                          level: int = logging.INFO) -> logging.Logger:
    """
    Setup a default format for the logger.

    The handler is attached only once, so repeated calls (e.g., on module reload) don't duplicate the output.

    Parameters
    ----------
    logger : logging.Logger
        Logger to format.
    level : int, optional
        Level of the logger, by default logging.INFO.

    Returns
    -------
    logger : logging.Logger
        Formatted logger.
    """
    logger.setLevel(level)
    if not any(getattr(handler, '_lather_handler', False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(_ColorFormatter(
            '%(asctime)s | %(name)s | %(levelname_colored)s | %(message)s',
            datefmt= '%H:%M:%S'
            ))
        handler._lather_handler = True  # type: ignore
        logger.addHandler(handler)
    logger.propagate = True
    return logger


#%% Setup logging
logger = logging.getLogger(__name__)
logger = default_logger_format(logger)


#%% Decorators
def time_function(func):
    """
    Log the runtime of the decorated function.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        output = func(*args, **kwargs)
        elapsed = time.perf_counter() - start
        logger.debug(f'Function {func.__qualname__} took {elapsed:.3f} s')
        return output
    return wrapper


def progress_tracker(func):
    """
    Log start and finish of the decorated function.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger.info(f'Started: {func.__qualname__}')
        output = func(*args, **kwargs)
        logger.info(f'Finished: {func.__qualname__}')
        return output
    return wrapper


def _pickle_path(pkl_name: str) -> str:
    """
    Resolve the location of a pickle file. Bare names are placed in the ./saved_data directory.
    """
    if os.path.dirname(pkl_name):
        return pkl_name
    return os.path.join(os.getcwd(), 'saved_data', pkl_name)


def save_and_load(func):
    """
    Cache the output of the decorated function in a pickle file.

    The decorated function is expected to accept the keywords `force_load`, `force_skip` and `pkl_name`:
        force_load : bool
            If True and the pickle file exists, the output is loaded instead of recalculated.
        force_skip : bool
            If True, the function is not run at all and None is returned.
        pkl_name : str
            Name of the pickle file. Empty name disables caching.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        force_load = kwargs.get('force_load', False)
        force_skip = kwargs.get('force_skip', False)
        pkl_name = kwargs.get('pkl_name', '')

        if force_skip:
            logger.info(f'Skipping function {func.__qualname__}')
            return None

        if pkl_name:
            path = _pickle_path(pkl_name)
            if force_load and os.path.exists(path):
                logger.info(f'Loading output of {func.__qualname__} from {path}')
                with open(path, 'rb') as input_file:
                    return pickle.load(input_file)

        output = func(*args, **kwargs)

        if pkl_name:
            path = _pickle_path(pkl_name)
            os.makedirs(os.path.dirname(path), exist_ok= True)
            with open(path, 'wb') as output_file:
                pickle.dump(output, output_file)
            logger.debug(f'Saved output of {func.__qualname__} to {path}')
        return output
    return wrapper
