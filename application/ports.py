from typing import List, Protocol, Sequence

from core import TaskItem


class TaskRepository(Protocol):
    """Persistence collaborator: supplies the initial items and stores changes.

    Only the item collection crosses this boundary; undo/redo history is
    in-memory state and is never handed to a repository.
    """

    def load_items(self) -> List[TaskItem]:
        ...

    def save_items(self, items: Sequence[TaskItem]) -> None:
        ...
