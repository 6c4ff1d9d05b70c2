"""Benchmark comparison subsystem for dbcompare.

Runs the external database worker programs repeatedly, parses their
timing output, and averages the results per operation so the engines
can be compared side by side.
"""
