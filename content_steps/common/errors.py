######################################################################
# Copyright 2016, 2024 John J. Rofrano. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
######################################################################
"""
Module: errors

Every failure a step can report carries an ErrorKind so that hooks and
reporters can branch on the kind instead of parsing messages.
"""

from enum import Enum


class ErrorKind(Enum):
    """Closed set of step failure kinds"""

    UNKNOWN_TYPE = "unknown_type"
    NOT_FOUND = "not_found"
    ASSERTION_FAILED = "assertion_failed"
    SUBMIT_BUTTON_MISSING = "submit_button_missing"
    UNSUPPORTED = "unsupported"


class StepError(Exception):
    """Base class for all step failures."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnknownType(StepError):
    """A content type label matches neither a type id nor a type name."""

    kind = ErrorKind.UNKNOWN_TYPE


class NotFound(StepError, LookupError):
    """A node, user, header or page element could not be found."""

    kind = ErrorKind.NOT_FOUND


class AssertionFailed(StepError, AssertionError):
    """An expectation about the application did not hold."""

    kind = ErrorKind.ASSERTION_FAILED


class SubmitButtonMissing(StepError):
    """The form on the current page has no submit button."""

    kind = ErrorKind.SUBMIT_BUTTON_MISSING


class Unsupported(StepError):
    """The active browser session cannot perform the requested action."""

    kind = ErrorKind.UNSUPPORTED


class DatabaseError(Exception):
    """Used for database operation failures (commit/connection/constraint errors)."""
