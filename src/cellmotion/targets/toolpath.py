"""Ordered lists of targets for one mechanical group."""

from typing import Iterable, Iterator, Optional

from cellmotion.targets.target import Target


class SimpleToolpath:
    """
    Sequence of targets.

    Anything exposing a ``targets`` attribute can be used as a toolpath; a
    single ``Target`` is a toolpath of one. ``SimpleToolpath`` concatenates
    such objects.
    """

    def __init__(self, toolpaths: Iterable = ()) -> None:
        self._targets: list[Target] = []
        for toolpath in toolpaths:
            self.extend(toolpath)

    @property
    def targets(self) -> list[Target]:
        return self._targets

    def add(self, target: Target) -> None:
        self._targets.append(target)

    def extend(self, toolpath) -> None:
        if isinstance(toolpath, Target):
            self._targets.append(toolpath)
        else:
            self._targets.extend(toolpath.targets)

    def shallow_clone(self, targets: Optional[list[Target]] = None) -> "SimpleToolpath":
        clone = SimpleToolpath()
        clone._targets = list(targets) if targets is not None else list(self._targets)
        return clone

    def __iter__(self) -> Iterator[Target]:
        return iter(self._targets)

    def __len__(self) -> int:
        return len(self._targets)

    def __getitem__(self, index: int) -> Target:
        return self._targets[index]
