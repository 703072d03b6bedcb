from __future__ import annotations

# Build scratch root, relative to the transformed directory.
BUILD_DIR = ".attrgen"

# Compiled method-class handlers.
METHODS_DIR = "methods"

# Compiled decorator-class handlers.
DECORATORS_DIR = "decorators"

# One directory per extracted handler: extract.py, extract.hash.
EXTRACT_DIR = "extracted"
EXTRACT_SOURCE_FILE = "extract.py"
EXTRACT_HASH_FILE = "extract.hash"
COMPILED_SUFFIX = ".pyc"

# Records which generated files are already up to date.
GENERATED_CACHE_FILE = "generated.json"
GENERATED_CACHE_VERSION = 1

# "# @[name(arg)]": line comment marker, then the annotation prefix.
COMMENT_MARKER = "#"
ANNOTATION_PREFIX = "@"

SOURCE_EXTENSION = ".py"
GENERATED_SUFFIX = "_generated"

GENERATED_TAG = "generated"
BUILD_COMMENT = "# attrgen:build"

CONFIG_FILES = ("attrgen.json", ".attrgen.json")

EXCLUDE_DIRS = {
    "__pycache__",
    "node_modules",
    "site-packages",
    "venv",
    "env",
    "build",
    "dist",
}

# Statement kinds an annotation comment can bind to.
TARGET_NODE_TYPES = (
    "FunctionDef",
    "ClassDef",
    "SimpleStatementLine",
    "If",
    "For",
    "While",
    "With",
    "Try",
)
