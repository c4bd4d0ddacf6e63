# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitHistorian, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

import sys as _sys
import os as _os


def _envBool(key: str) -> bool:
    return _os.environ.get(key, "") not in ["", "0"]


APP_VERSION = "0.4.0"
APP_SYSTEM_NAME = "githistorian"
APP_DISPLAY_NAME = "GitHistorian"

APP_TESTMODE = _envBool("GITHISTORIAN_TESTMODE") or "pytest" in _sys.modules
"""
Unit testing mode.
Can be forced with environment variable GITHISTORIAN_TESTMODE.
"""

APP_DEBUG = APP_TESTMODE or _envBool("GITHISTORIAN_DEBUG")
"""
Enable expensive assertions on the history graph.
Can be forced with environment variable GITHISTORIAN_DEBUG.
Implied by APP_TESTMODE.
"""

GIT_EXECUTABLE = _os.environ.get("GITHISTORIAN_GIT", "") or "git"
"""
Git binary used to produce the commit log.
Can be overridden with environment variable GITHISTORIAN_GIT.
"""
