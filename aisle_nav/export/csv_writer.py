"""CSV export of navigation snapshots."""

import csv
from pathlib import Path
from typing import IO, Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..model.state import NavigationSnapshot


class CSVWriter:
    """
    Trace of the shopper's pose, one row per snapshot.

    Output format:
        clock,step_index,x,y,heading,speed,phase
        0.0167,0,9.0,22.0,-0.1571,0.0,approaching
        ...

    Rows are flushed to disk every `flush_every` appends.
    """

    FIELDNAMES = ['clock', 'step_index', 'x', 'y', 'heading', 'speed', 'phase']

    def __init__(self, output_path: Path, flush_every: int = 1):
        if flush_every < 1:
            raise ValueError("flush_every must be at least 1")
        self.output_path = Path(output_path)
        self.flush_every = flush_every
        self.rows_written = 0
        self._file: Optional[IO[str]] = None
        self._writer: Optional[csv.DictWriter] = None

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def open(self) -> None:
        """Create the file (and its directory) and write the header."""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.output_path, 'w', newline='')
        self._writer = csv.DictWriter(self._file, fieldnames=self.FIELDNAMES)
        self._writer.writeheader()
        self.rows_written = 0

    def append(self, snapshot: "NavigationSnapshot") -> None:
        if not self.is_open:
            self.open()
        self._writer.writerow(snapshot.to_csv_row())
        self.rows_written += 1
        if self.rows_written % self.flush_every == 0:
            self._file.flush()

    def extend(self, snapshots: Iterable["NavigationSnapshot"]) -> None:
        for snapshot in snapshots:
            self.append(snapshot)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            self._writer = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
