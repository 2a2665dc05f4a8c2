"""
GHG emissions quantification and uncertainty propagation engine
"""

__version__ = "1.0.0"
