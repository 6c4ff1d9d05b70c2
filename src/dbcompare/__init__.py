"""dbcompare: compare database engines by averaging repeated worker runs."""

__version__ = "0.1.0"
