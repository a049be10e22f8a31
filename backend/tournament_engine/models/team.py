from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    seed: Optional[int] = None  # 1 = strongest; None = unseeded
    group_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "seed": self.seed, "group_id": self.group_id}
