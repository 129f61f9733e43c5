from typing import List, Optional


class CodeWriter:
    """Indented line accumulator shared by the generators."""

    def __init__(self, indent_unit: str = "    ", indent: int = 0):
        self._lines: List[str] = []
        self._unit = indent_unit
        self._indent = indent

    def writeln(self, line: str = "", depth: Optional[int] = None) -> "CodeWriter":
        level = self._indent if depth is None else depth
        if line:
            self._lines.append(self._unit * level + line)
        else:
            self._lines.append("")
        return self

    def blank(self) -> "CodeWriter":
        return self.writeln()

    def lines(self) -> List[str]:
        return self._lines

    def result(self) -> str:
        return "\n".join(self._lines)
