from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

from ..errors import LabelArityError, PathNotFound
from .paths import CompiledPath, compile_path
from .transforms import IDENTITY, Transform


@dataclass(frozen=True)
class MetricDescriptor:
    """Identity of a published gauge."""

    name: str
    help: str
    label_names: Tuple[str, ...] = ()

    def check_labels(self, label_values: Tuple[str, ...]) -> None:
        if len(label_values) != len(self.label_names):
            raise LabelArityError(
                f"Metric '{self.name}' expects labels {list(self.label_names)}, "
                f"got {len(label_values)} value(s)."
            )


@dataclass(frozen=True)
class MetricDefinition:
    """Declarative definition of one extracted gauge value.

    ``label_values`` are the static label values used by the pull collector.
    Per-node metrics derive their label from the document and leave it empty.
    """

    descriptor: MetricDescriptor
    path: Optional[CompiledPath] = None
    transform: Transform = IDENTITY
    label_values: Tuple[str, ...] = ()

    @classmethod
    def from_path(
        cls,
        path: str,
        name: str,
        help: str,
        transform: Transform = IDENTITY,
        labels: Optional[Mapping[str, str]] = None,
    ) -> "MetricDefinition":
        labels = labels or {}
        return cls(
            descriptor=MetricDescriptor(name, help, tuple(labels)),
            path=compile_path(path),
            transform=transform,
            label_values=tuple(labels.values()),
        )

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def is_liveness(self) -> bool:
        return self.path is None

    def extract(self, document: Any) -> float:
        """Evaluate the path against ``document`` and transform the result."""
        if self.path is None:
            raise PathNotFound("")
        value, found = self.path.evaluate(document)
        if not found:
            raise PathNotFound(self.path.expression)
        return self.transform(value)

    def __str__(self) -> str:
        return self.path.expression if self.path is not None else self.name


@dataclass(frozen=True)
class Observation:
    descriptor: MetricDescriptor
    label_values: Tuple[str, ...]
    value: float
    labels: Mapping[str, str] = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        self.descriptor.check_labels(self.label_values)
        object.__setattr__(
            self, "labels", dict(zip(self.descriptor.label_names, self.label_values))
        )

    @property
    def name(self) -> str:
        return self.descriptor.name
