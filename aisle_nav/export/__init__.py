"""Export package for the aisle navigation engine."""

from .csv_writer import CSVWriter
from .reporter import Reporter

__all__ = ['CSVWriter', 'Reporter']
