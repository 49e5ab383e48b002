"""Names of package settings understood by the engine."""

import re

# Setting names are written as XML attribute names.
NAME_PATTERN = re.compile(r"^[A-Za-z_][\w.\-]*$")

# Opaque framework hint passed to driver resolution (str).
TARGET_FRAMEWORK = "TargetFrameworkName"

# Give units that contain no tests a skipped driver instead of a failing one (bool).
SKIP_NON_TEST_UNITS = "SkipNonTestUnits"

# Register the unit's directory with the shared path registry while it
# is loaded inside a non-default isolation context (bool).
REQUIRES_SHARED_RESOLVER = "RequiresSharedPathResolver"

# Working directory handed to drivers (str).
WORK_DIRECTORY = "WorkDirectory"

# Run tests under a debugger (bool).
DEBUG_TESTS = "DebugTests"

# Driver-side trace verbosity, e.g. "Off", "Error", "Verbose" (str).
INTERNAL_TRACE_LEVEL = "InternalTraceLevel"

SETTING_TYPES = {
    TARGET_FRAMEWORK: str,
    SKIP_NON_TEST_UNITS: bool,
    REQUIRES_SHARED_RESOLVER: bool,
    WORK_DIRECTORY: str,
    DEBUG_TESTS: bool,
    INTERNAL_TRACE_LEVEL: str,
}
