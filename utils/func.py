import datetime
import logging
from typing import List, Optional

from colorama import Fore, init

DISCORD_MESSAGE_LIMIT = 2000


class ColoredFormatter(logging.Formatter):
    """Custom formatter that adds colors to log messages based on severity level."""

    def format(self, record):
        LOG_COLORS = {
            "DEBUG": Fore.CYAN,
            "INFO": Fore.GREEN,
            "WARNING": Fore.YELLOW,
            "ERROR": Fore.RED,
            "CRITICAL": Fore.RED + "\033[1m",
        }
        log_color = LOG_COLORS.get(record.levelname, Fore.WHITE)

        timestamp = datetime.datetime.fromtimestamp(
            record.created).strftime('%H:%M:%S')
        message = record.getMessage()

        # Display: [HH:MM:SS] LEVEL    [file:line] - message
        return f"{log_color}[{timestamp}] {record.levelname:<8} [{record.filename}:{record.lineno}] {Fore.RESET}- {message}"


def setup_logging(debug_mode: bool = False, log_file: Optional[str] = "app.log") -> logging.Logger:
    """
    Configures logging: sets up a file handler and a console handler with colors.

    Args:
        debug_mode: Whether to enable debug logging to console
        log_file: Path of the log file, or None to log to console only

    Returns:
        logging.Logger: Configured root logger
    """
    init(autoreset=True)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(logging.DEBUG)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("[%(filename)s] %(levelname)s : %(message)s")
        )
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if debug_mode else logging.INFO)
    console_handler.setFormatter(ColoredFormatter())
    root_logger.addHandler(console_handler)

    # Silence noisy third-party libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("discord").setLevel(logging.INFO)
    logging.getLogger("discord.http").setLevel(logging.WARNING)
    logging.getLogger("discord.gateway").setLevel(logging.WARNING)

    return root_logger


def split_message(text: str, max_length: int = DISCORD_MESSAGE_LIMIT) -> List[str]:
    """
    Split a message into chunks that don't exceed Discord's character limit.
    Tries to split at natural boundaries (newlines, spaces) when possible.

    Args:
        text: The text to split
        max_length: Maximum length per chunk (default: 2000 for Discord)

    Returns:
        List of message chunks
    """
    if len(text) <= max_length:
        return [text]

    chunks = []
    current_chunk = ""

    for line in text.split('\n'):
        # If a single line is too long, split it by spaces
        if len(line) > max_length:
            if current_chunk:
                chunks.append(current_chunk)
                current_chunk = ""
            for word in line.split(' '):
                # If a single word is too long, hard split it
                if len(word) > max_length:
                    if current_chunk:
                        chunks.append(current_chunk)
                        current_chunk = ""
                    for i in range(0, len(word), max_length):
                        chunks.append(word[i:i + max_length])
                    continue

                candidate = current_chunk + (' ' if current_chunk else '') + word
                if len(candidate) > max_length:
                    chunks.append(current_chunk)
                    current_chunk = word
                else:
                    current_chunk = candidate
            continue

        candidate = current_chunk + ('\n' if current_chunk else '') + line
        if len(candidate) > max_length:
            if current_chunk:
                chunks.append(current_chunk)
            current_chunk = line
        else:
            current_chunk = candidate

    if current_chunk:
        chunks.append(current_chunk)

    return chunks
