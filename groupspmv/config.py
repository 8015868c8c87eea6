# Copyright 2025 BrainX Ecosystem Limited. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""Persisted user defaults.

Two choices can be remembered per platform (``'cpu'`` or ``'gpu'``):

- ``'csrmv'``: the kernel backend used when :func:`groupspmv.csrmv` is
  called without ``backend``.  ``groupspmv benchmark --persist`` writes it.
- ``'reference'``: the routine :func:`groupspmv.validate` checks against.

Both live in a single JSON document::

    {"schema_version": 1,
     "defaults": {"csrmv": {"gpu": "numba_cuda"}, "reference": {"cpu": "scipy"}}}

stored at ``$XDG_CONFIG_HOME/groupspmv/defaults.json`` on Linux,
``~/Library/Application Support/groupspmv/defaults.json`` on macOS and
``%APPDATA%/groupspmv/defaults.json`` on Windows.  Every stored name is
checked against the registered kernel backends and the known reference
routines, both when it is saved and when the file is read back.
"""

import json
import os
import platform
import tempfile
import warnings
from typing import Dict, Optional, Tuple

__all__ = [
    'OPERATIONS',
    'valid_choices',
    'load_user_defaults',
    'save_user_defaults',
    'get_user_default',
    'set_user_default',
    'clear_user_defaults',
    'get_config_path',
    'invalidate_cache',
    'set_numba_parallel',
    'get_numba_parallel',
]

SCHEMA_VERSION = 1
OPERATIONS = ('csrmv', 'reference')
_PLATFORMS = ('cpu', 'gpu')

# operation -> platform -> choice
Defaults = Dict[str, Dict[str, str]]

_cache: Optional[Defaults] = None


def get_config_path() -> str:
    """Return the location of ``defaults.json`` for the current OS."""
    system = platform.system()
    if system == 'Windows':
        root = os.environ.get('APPDATA') or os.path.expanduser('~')
    elif system == 'Darwin':
        root = os.path.join(os.path.expanduser('~'), 'Library', 'Application Support')
    else:
        root = os.environ.get('XDG_CONFIG_HOME') or os.path.join(os.path.expanduser('~'), '.config')
    return os.path.join(root, 'groupspmv', 'defaults.json')


def valid_choices(op_name: str, platform_name: str) -> Tuple[str, ...]:
    """Return the names that may be stored for ``op_name`` on ``platform_name``.

    For ``'csrmv'`` these are the backends registered on
    :data:`groupspmv.csrmv_p` for the platform; for ``'reference'`` they are
    :data:`groupspmv._validate.REFERENCES`, installed or not.

    Raises
    ------
    ValueError
        If ``op_name`` or ``platform_name`` is unknown.
    """
    if platform_name not in _PLATFORMS:
        raise ValueError(f'Unknown platform {platform_name!r}; expected one of {_PLATFORMS}.')
    if op_name == 'csrmv':
        from groupspmv._csr.float import csrmv_p  # pylint: disable=import-outside-toplevel
        return tuple(csrmv_p.available_backends(platform_name))
    if op_name == 'reference':
        from groupspmv._validate import REFERENCES  # pylint: disable=import-outside-toplevel
        return REFERENCES
    raise ValueError(f'Unknown operation {op_name!r}; expected one of {OPERATIONS}.')


def _check_defaults(defaults) -> Defaults:
    if not isinstance(defaults, dict):
        raise ValueError(f'defaults must map operation names to platforms, got {type(defaults).__name__}.')
    checked: Defaults = {}
    for op_name, per_platform in defaults.items():
        if not isinstance(per_platform, dict):
            raise ValueError(f'Defaults of {op_name!r} must map platforms to names.')
        for platform_name, choice in per_platform.items():
            allowed = valid_choices(op_name, platform_name)
            if choice not in allowed:
                raise ValueError(
                    f'{choice!r} is not a valid {op_name} default on {platform_name!r}; '
                    f'expected one of {allowed}.'
                )
            checked.setdefault(op_name, {})[platform_name] = choice
    return checked


def _read(path: str) -> Defaults:
    """Read the stored defaults; a missing file means none.

    An unreadable file, a wrong schema version or an invalid entry makes the
    whole file ignored with a ``UserWarning``.
    """
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        version = data.get('schema_version') if isinstance(data, dict) else None
        if version != SCHEMA_VERSION:
            raise ValueError(f'schema version {version!r} is not supported (expected {SCHEMA_VERSION})')
        return _check_defaults(data.get('defaults', {}))
    except (OSError, ValueError) as e:
        # json.JSONDecodeError is a ValueError
        warnings.warn(f'groupspmv: ignoring config file {path}: {e}', stacklevel=3)
        return {}


def _write(path: str, defaults: Defaults):
    """Replace ``path`` with ``defaults`` in one ``os.replace``."""
    directory = os.path.dirname(path)
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix='.defaults-', suffix='.json', dir=directory)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump({'schema_version': SCHEMA_VERSION, 'defaults': defaults}, f, indent=2, sort_keys=True)
            f.write('\n')
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def invalidate_cache():
    """Forget the cached defaults; the next lookup reads the file again."""
    global _cache
    _cache = None


def load_user_defaults() -> Defaults:
    """Return every stored default as ``{operation: {platform: choice}}``.

    The file is read on first use and cached until :func:`invalidate_cache`.
    """
    global _cache
    if _cache is None:
        _cache = _read(get_config_path())
    return _cache


def save_user_defaults(defaults: Defaults):
    """Merge ``defaults`` over the stored ones and write the file.

    Parameters
    ----------
    defaults : dict of str to dict of str to str
        ``{operation: {platform: choice}}``, e.g.
        ``{'csrmv': {'gpu': 'numba_cuda'}}``.

    Raises
    ------
    ValueError
        If an operation, platform or choice is not valid.  Nothing is
        written in that case.
    OSError
        If the config directory or file cannot be written.
    """
    global _cache
    defaults = _check_defaults(defaults)
    path = get_config_path()
    merged = _read(path)
    for op_name, per_platform in defaults.items():
        merged.setdefault(op_name, {}).update(per_platform)
    _write(path, merged)
    _cache = merged


def get_user_default(op_name: str, platform_name: str) -> Optional[str]:
    """Return the stored choice for ``op_name`` on ``platform_name``, or ``None``.

    Examples
    --------
    .. code-block:: python

        >>> import groupspmv
        >>> groupspmv.get_user_default('csrmv', 'gpu')  # doctest: +SKIP
        'numba_cuda'
    """
    return load_user_defaults().get(op_name, {}).get(platform_name)


def set_user_default(op_name: str, platform_name: str, choice: str):
    """Store a single default.  See :func:`save_user_defaults`."""
    save_user_defaults({op_name: {platform_name: choice}})


def clear_user_defaults():
    """Delete the config file and the cached defaults."""
    global _cache
    path = get_config_path()
    if os.path.isfile(path):
        os.unlink(path)
    _cache = None


_numba_parallel: bool = False


def set_numba_parallel(parallel: bool = True):
    """Run the CPU kernel's row blocks under ``numba.prange`` from now on.

    Compiled kernels are cached per setting, so the change applies to the
    next :func:`groupspmv.csrmv` call.
    """
    global _numba_parallel
    _numba_parallel = bool(parallel)


def get_numba_parallel() -> bool:
    return _numba_parallel
