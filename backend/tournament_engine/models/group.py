from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Group:
    id: str  # "A", "B", ...
    members: Tuple[str, ...]  # team ids in draw order

    @property
    def size(self) -> int:
        return len(self.members)

    def to_dict(self) -> dict:
        return {"id": self.id, "members": list(self.members)}
