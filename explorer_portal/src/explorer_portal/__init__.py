"""Grid explorer and tutoring portal domain package"""

__version__ = "1.4.0"
