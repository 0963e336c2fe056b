from importlib.metadata import version

__version__ = version("pyadata")

from .codec import decode, encode, encode_into, size_of, skip
from .runtime import AdataError, Buffer, DecodeError, EncodeError, ErrorCode
from .schema.compiler import (
    GeneratorOptions,
    compile_module,
    compile_modules,
    generate_module,
    load_module
)

__all__ = [
    'AdataError',
    'Buffer',
    'DecodeError',
    'EncodeError',
    'ErrorCode',
    'GeneratorOptions',
    'compile_module',
    'compile_modules',
    'decode',
    'encode',
    'encode_into',
    'generate_module',
    'load_module',
    'size_of',
    'skip',
    '__version__',
]
