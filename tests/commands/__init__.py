"""Tests for command implementation modules.

Test Files and Coverage:
========================

| Test File        | Test Classes               | Tested Constructs                          | Tested Functionalities                        |
|------------------|----------------------------|--------------------------------------------|-----------------------------------------------|
| test_check.py    | SplitBasePatternTest       | split_base_pattern()                       | Root/pattern split, escapes, '..'           |
|                  | EnumerateBaseFilesTest     | enumerate_base_files()                     | Glob expansion, include/exclude, bad roots    |
|                  | EvaluateCheckMapTest       | evaluate_check_map()                       | Matching, missing and differing copies, errors|
|                  | DoCheckTest                | do_check()                                 | Multiple tasks, fail-fast, idempotence        |
"""
