"""Report persistence and comparison.

This package contains:
- store: ReportStore for reading and writing the report file of an output directory
- diff: drift detection within a report and change detection between two reports
"""
