"""Tests for utility modules.

Test Files and Coverage:
========================

| Test File          | Test Classes   | Tested Constructs | Tested Functionalities                       |
|--------------------|----------------|-------------------|----------------------------------------------|
| test_processor.py  | ProcessorTest  | Processor         | Digests, existence checks, glob expansion    |
| test_throttler.py  | ThrottlerTest  | Throttler         | Concurrency limit, failure propagation       |
"""
