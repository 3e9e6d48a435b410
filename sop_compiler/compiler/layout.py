"""Canvas placement for generated nodes.

Nodes flow left to right. The targets of a decision step share the column
after the decision and stack downwards, one branch offset per node already
placed in that column.
"""

from sop_compiler.config.settings import LayoutConfig

Position = tuple[int, int]


class Layout:
    def __init__(self, config: LayoutConfig) -> None:
        self._config = config
        self._cursor = config.x_start
        self._placed: list[Position] = []
        self._branch_columns: dict[str, int] = {}

    def place_trigger(self) -> Position:
        position = (self._cursor, self._config.y_start)
        self._placed.append(position)
        self._cursor += self._config.x_spacing
        return position

    def place_step(self, step_id: str) -> Position:
        x = self._branch_columns.get(step_id, self._cursor)
        in_column = sum(1 for px, _ in self._placed if px == x)
        position = (x, self._config.y_start + in_column * self._config.y_branch_offset)
        self._placed.append(position)
        self._cursor = max(self._cursor, x + self._config.x_spacing)
        return position

    def open_branches(self, decision_position: Position, targets: list[str]) -> None:
        """Reserve the column after a decision node for its branch targets."""
        column = decision_position[0] + self._config.x_spacing
        for target in targets:
            self._branch_columns.setdefault(target, column)
