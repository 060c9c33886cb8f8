"""Tests for report module.

Test Files and Coverage:
========================

| Test File             | Test Classes          | Tested Constructs            | Tested Functionalities                    |
|-----------------------|-----------------------|------------------------------|-------------------------------------------|
| test_report_store.py  | ReportStoreTest       | ReportStore                  | Save/load, overwrite, corrupt reports     |
| test_diff.py          | FindDriftTest         | find_drift(), Drift          | Missing and mismatching copies            |
|                       | CompareReportsTest    | compare_reports()            | Added, removed and modified entries       |
"""
