"""
Errors

Description: Exception taxonomy for the board scraper
Author: Eric Hiss (GitHub: EricRollei)
Contact: eric@historic.camera, eric@rollei.us
License: Dual License (Non-Commercial and Commercial Use)
Copyright (c) 2025 Eric Hiss. All rights reserved.

Dual License:
1. Non-Commercial Use: This software is licensed under the terms of the
   Creative Commons Attribution-NonCommercial 4.0 International License.
   To view a copy of this license, visit http://creativecommons.org/licenses/by-nc/4.0/

2. Commercial Use: For commercial use, a separate license is required.
   Please contact Eric Hiss at eric@historic.camera or eric@rollei.us for licensing options.
"""


class ScraperError(Exception):
    """Base exception for the board scraper."""

    def __init__(self, message: str, code: str = "SCRAPER_ERROR", context: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.context = context or {}


class MalformedSourceError(ScraperError):
    """Structured data was present but could not be parsed."""

    def __init__(self, message: str, sample: str = "", context: dict = None):
        super().__init__(message, "MALFORMED_SOURCE", context)
        self.sample = sample


class NetworkFailureError(ScraperError):
    """A fetch failed (transport error or non-success status)."""

    def __init__(self, message: str, url: str = "", status: int = None, context: dict = None):
        super().__init__(message, "NETWORK_FAILURE", context)
        self.url = url
        self.status = status


class AutomationUnavailableError(ScraperError):
    """Browser automation is not installed or could not start."""

    def __init__(self, message: str = "Browser automation unavailable", context: dict = None):
        super().__init__(message, "AUTOMATION_UNAVAILABLE", context)


class InvalidBoardUrlError(ScraperError):
    """The URL is not a board page."""

    def __init__(self, message: str = "Invalid Pinterest board URL", context: dict = None):
        super().__init__(message, "INVALID_BOARD_URL", context)


class BoardUnreachableError(ScraperError):
    """Every strategy failed to reach the source; nothing could be gathered."""

    def __init__(self, message: str = "Board could not be reached", context: dict = None):
        super().__init__(message, "BOARD_UNREACHABLE", context)
