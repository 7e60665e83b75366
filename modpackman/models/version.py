"""
版本模型

结构化的版本号（major.minor.patch），按分量逐一比较。
末尾的 0 分量不影响比较结果，即 1.2 == 1.2.0。
"""

from dataclasses import dataclass
from functools import total_ordering
from typing import Sequence, Tuple, Union

from modpackman.exceptions import InvalidVersionError

VersionLike = Union[str, Sequence[int], "Version"]


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """由非负整数组成的有序版本号"""

    parts: Tuple[int, ...]

    def __post_init__(self):
        if not self.parts:
            raise InvalidVersionError("版本号不能为空")
        for part in self.parts:
            if isinstance(part, bool) or not isinstance(part, int) or part < 0:
                raise InvalidVersionError(
                    f"版本号分量必须是非负整数: {self.parts!r}",
                    context={"version": repr(self.parts)},
                )

    @classmethod
    def parse(cls, value: VersionLike) -> "Version":
        """
        解析版本号

        Args:
            value: "1.2.3" 形式的字符串、整数序列或 Version

        Returns:
            Version 对象
        """
        if isinstance(value, Version):
            return value

        if isinstance(value, str):
            text = value.strip()
            pieces = text.split(".")
            valid = all(piece.isascii() and piece.isdigit() for piece in pieces)
            if not text or not valid:
                raise InvalidVersionError(
                    f"无法解析版本号: '{value}'",
                    context={"version": value},
                )
            return cls(tuple(int(piece) for piece in pieces))

        if isinstance(value, (list, tuple)):
            return cls(tuple(value))

        raise InvalidVersionError(
            f"不支持的版本号类型: {type(value).__name__}",
            context={"version": repr(value)},
        )

    @property
    def normalized(self) -> Tuple[int, ...]:
        """去掉末尾 0 分量后的元组，用于比较"""
        parts = list(self.parts)
        while len(parts) > 1 and parts[-1] == 0:
            parts.pop()
        return tuple(parts)

    @property
    def major(self) -> int:
        return self.parts[0]

    @property
    def minor(self) -> int:
        return self.parts[1] if len(self.parts) > 1 else 0

    @property
    def patch(self) -> int:
        return self.parts[2] if len(self.parts) > 2 else 0

    def equals(self, other: VersionLike) -> bool:
        """逐分量比较是否相等"""
        return self == Version.parse(other)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.normalized == other.normalized

    def __lt__(self, other) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.normalized < other.normalized

    def __hash__(self) -> int:
        return hash(self.normalized)

    def __str__(self) -> str:
        return ".".join(str(part) for part in self.parts)
