"""
Type aliases for tensorindex library.

This module defines type aliases used throughout the library
for better type safety and code clarity.
"""

from typing import NewType

# Core type aliases
Identity = NewType('Identity', int)
Identity64 = NewType('Identity64', int)
Dimension = NewType('Dimension', int)
ElementOffset = NewType('ElementOffset', int)

# Identity space bounds
IDENTITY_BITS = 128
GENERATED_IDENTITY_BITS = 64
MAX_IDENTITY = (1 << IDENTITY_BITS) - 1
MAX_GENERATED_IDENTITY = (1 << GENERATED_IDENTITY_BITS) - 1
LOW_WORD_MASK = (1 << 64) - 1
