import logging
import sys
from pathlib import Path

import colorama
from colorama import Fore, Style

from .config import BUSINESS_LOGGER_NAME, LOGGER_NAME


class ColorFormatter(logging.Formatter):
    """Console formatter that colors the level name"""
    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT,
    }

    def __init__(self, use_color=True):
        super().__init__(fmt="%(asctime)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        self.use_color = use_color

    def format(self, record):
        formatted_message = super().format(record)
        if not self.use_color:
            return formatted_message
        levelname = record.levelname
        color = self.COLORS.get(levelname, "")
        # Only the level name is colored, the message stays plain
        level_start_index = formatted_message.find(levelname)
        if level_start_index == -1:
            return f"{color}{formatted_message}{Style.RESET_ALL}"
        return (formatted_message[:level_start_index] + f"{color}{levelname}{Style.RESET_ALL}"
                + formatted_message[level_start_index + len(levelname):])


def _resolve_log_dir(log_dir):
    log_dir = Path(log_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print(f"Warning: Could not create logs directory '{log_dir}': {e}. Using current directory.")
        log_dir = Path(".")
    return log_dir


def setup_logging(session_id, log_dir="logs", debug=False, use_color=True):
    """Configure the scraper logger (console + session file + error file) and the business data logger"""
    log_dir = _resolve_log_dir(log_dir)
    if use_color:
        colorama.init()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    if logger.hasHandlers():
        logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(ColorFormatter(use_color=use_color))

    main_file_handler = logging.FileHandler(log_dir / f"gmaps_scraper_{session_id}.log", encoding='utf-8')
    main_file_handler.setLevel(logging.DEBUG)
    main_file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(threadName)s - %(message)s'))

    # Warnings and above, with source location
    error_file_handler = logging.FileHandler(log_dir / f"gmaps_errors_{session_id}.log", encoding='utf-8')
    error_file_handler.setLevel(logging.WARNING)
    error_file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(pathname)s:%(lineno)d\n%(message)s\n'))

    logger.addHandler(console_handler)
    logger.addHandler(main_file_handler)
    logger.addHandler(error_file_handler)
    logger.propagate = False

    # One JSON document per extracted business
    business_logger = logging.getLogger(BUSINESS_LOGGER_NAME)
    business_logger.setLevel(logging.INFO)
    if business_logger.hasHandlers():
        business_logger.handlers.clear()
    business_handler = logging.FileHandler(log_dir / f"business_data_{session_id}.log", encoding='utf-8')
    business_handler.setFormatter(logging.Formatter('%(message)s'))
    business_logger.addHandler(business_handler)
    business_logger.propagate = False

    return logger, business_logger
