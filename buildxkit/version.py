"""Build identification values."""

PACKAGE = "buildxkit"

VERSION = "0.0.0+unknown"

REVISION = ""