"""Evaluations of secure-field functions over line and circle domains.

Values are held in bit-reversed order, either on the host (SecureColumn) or on
a device (DeviceSecureColumn). Conversions between the two copy the data; the
source is left untouched.
"""

from dataclasses import dataclass
from typing import Optional, Union

from device.context import DeviceContext
from device.secure_column import DeviceSecureColumn
from primitives.circle import CircleDomain, LineDomain
from primitives.secure_column import SecureColumn

Values = Union[SecureColumn, DeviceSecureColumn]


def _values_to_cpu(values: Values) -> SecureColumn:
    if isinstance(values, DeviceSecureColumn):
        return values.to_cpu()
    return values


def _values_to_device(values: Values, device: Optional[DeviceContext]) -> DeviceSecureColumn:
    if isinstance(values, DeviceSecureColumn):
        return values.clone()
    return DeviceSecureColumn.from_cpu(values, device)


@dataclass
class LineEvaluation:
    """Values of a function on a LineDomain."""
    domain: LineDomain
    values: Values

    def __post_init__(self) -> None:
        if len(self.values) != self.domain.size:
            raise ValueError(f"LineEvaluation has {len(self.values)} values for a domain of size {self.domain.size}")

    @classmethod
    def new_zero(cls, domain: LineDomain) -> "LineEvaluation":
        return cls(domain, SecureColumn.zeros(domain.size))

    def __len__(self) -> int:
        return len(self.values)

    def to_cpu(self) -> "LineEvaluation":
        return LineEvaluation(self.domain, _values_to_cpu(self.values))

    def to_device(self, device: Optional[DeviceContext] = None) -> "LineEvaluation":
        return LineEvaluation(self.domain, _values_to_device(self.values, device))


@dataclass
class SecureEvaluation:
    """Values of a secure-field function on a CircleDomain."""
    domain: CircleDomain
    values: Values

    def __post_init__(self) -> None:
        if len(self.values) != self.domain.size:
            raise ValueError(f"SecureEvaluation has {len(self.values)} values for a domain of size {self.domain.size}")

    def __len__(self) -> int:
        return len(self.values)

    def to_cpu(self) -> "SecureEvaluation":
        return SecureEvaluation(self.domain, _values_to_cpu(self.values))

    def to_device(self, device: Optional[DeviceContext] = None) -> "SecureEvaluation":
        return SecureEvaluation(self.domain, _values_to_device(self.values, device))
