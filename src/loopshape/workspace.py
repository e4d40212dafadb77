# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Named-Variable Workspace

Loads previously saved variables (typically controllers kept for comparison)
once at the start of a run and exposes them read-only. Nothing in the
pipeline reads files on its own; callers pass what they load explicitly.

A system ``K`` is stored as four variables ``K_A``, ``K_B``, ``K_C``,
``K_D``. A file holding a single realization under the bare names ``A``,
``B``, ``C``, ``D`` is read with ``Workspace.system()``.

Supported formats: MATLAB ``.mat`` (via scipy.io) and NumPy ``.npz``.

Usage
-----
>>> from loopshape.workspace import load_workspace, save_workspace
>>>
>>> save_workspace("controllers.mat", K_hinf=K1, K_mu=K2)
>>> ws = load_workspace("controllers.mat")
>>> ws.names()
['K_hinf', 'K_mu']
>>> K = ws.system("K_hinf")
"""

import logging
import warnings
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Union

import numpy as np
import scipy.io as sio

from loopshape.systems.state_space import StateSpaceSystem

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_PARTS = ("A", "B", "C", "D")


class Workspace:
    """
    Immutable mapping of variable name → array.

    Examples
    --------
    >>> ws = Workspace({"K_A": [[-1.0]], "K_B": [[1.0]], "K_C": [[2.0]], "K_D": [[0.0]]})
    >>> ws.system("K").n_states
    1
    >>> ws["K_A"]
    array([[-1.]])
    """

    def __init__(self, variables: Mapping[str, np.ndarray], source: Optional[Path] = None):
        frozen: Dict[str, np.ndarray] = {}
        for name, value in variables.items():
            array = np.array(value)
            array.flags.writeable = False
            frozen[name] = array
        self._variables = MappingProxyType(frozen)
        self.source = source

    def __getitem__(self, name: str) -> np.ndarray:
        try:
            return self._variables[name]
        except KeyError:
            raise KeyError(f"Variable '{name}' not found in workspace {self.source or ''}".rstrip()) from None

    def __contains__(self, name: object) -> bool:
        return name in self._variables

    def __len__(self) -> int:
        return len(self._variables)

    def keys(self):
        return self._variables.keys()

    def names(self) -> List[str]:
        """Sorted names of the systems stored as ``<name>_A`` ... ``<name>_D``."""
        found = []
        for key in self._variables:
            if key.endswith("_A"):
                stem = key[:-2]
                if all(f"{stem}_{part}" in self._variables for part in _PARTS):
                    found.append(stem)
        return sorted(found)

    def system(self, name: Optional[str] = None) -> StateSpaceSystem:
        """
        Rebuild a stored system.

        Args:
            name: Stem of the ``<name>_A`` ... ``<name>_D`` variables, or None
                for the bare ``A`` ... ``D`` variables

        Raises:
            KeyError: If one of the four matrices is missing
            MalformedSystemError: If the stored matrices are not conformant
        """
        keys = list(_PARTS) if name is None else [f"{name}_{part}" for part in _PARTS]
        missing = [key for key in keys if key not in self._variables]
        if missing:
            raise KeyError(f"Workspace has no system '{name or ''}': missing {missing}")
        return StateSpaceSystem(*(np.atleast_2d(self._variables[key]) for key in keys))

    def __repr__(self) -> str:
        return f"Workspace({len(self)} variables, source={self.source})"


def _read_mat(path: Path) -> Dict[str, np.ndarray]:
    """Read a .mat file without the duplicate-variable warning."""
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", "Duplicate variable name*")
        contents = sio.loadmat(str(path))
    return {key: value for key, value in contents.items() if not key.startswith("__")}


def load_workspace(path: PathLike) -> Workspace:
    """
    Load all variables of a ``.mat`` or ``.npz`` file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the extension is not supported
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Workspace file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".mat":
        variables = _read_mat(path)
    elif suffix == ".npz":
        with np.load(path, allow_pickle=False) as data:
            variables = {key: data[key] for key in data.files}
    else:
        raise ValueError(f"Unsupported workspace format '{suffix}', use .mat or .npz")

    logger.info("Loaded %d variables from %s", len(variables), path)
    return Workspace(variables, source=path)


def save_workspace(path: PathLike, **systems: StateSpaceSystem) -> Path:
    """
    Save systems as ``<name>_A`` ... ``<name>_D`` variables.

    Args:
        path: Target ``.mat`` or ``.npz`` file
        **systems: Systems keyed by name

    Returns:
        The written path
    """
    path = Path(path)
    variables: Dict[str, np.ndarray] = {}
    for name, system in systems.items():
        for part, matrix in zip(_PARTS, system.matrices()):
            variables[f"{name}_{part}"] = np.array(matrix)

    suffix = path.suffix.lower()
    if suffix == ".mat":
        sio.savemat(str(path), variables)
    elif suffix == ".npz":
        np.savez(path, **variables)
    else:
        raise ValueError(f"Unsupported workspace format '{suffix}', use .mat or .npz")

    logger.info("Saved %d system(s) to %s", len(systems), path)
    return path


__all__ = [
    "Workspace",
    "load_workspace",
    "save_workspace",
]
