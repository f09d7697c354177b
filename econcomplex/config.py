"""
Defaults shared by the econcomplex engines.
"""

import os


# Column selectors for tabular input
DEFAULT_COUNTRY = "country"
DEFAULT_PRODUCT = "product"
DEFAULT_VALUE = "value"

# Balassa Index
DEFAULT_DISCRETE = True
DEFAULT_CUTOFF = 1.0

# Complexity measures
COMPLEXITY_METHODS = ("fitness", "reflections", "eigenvalues")
DEFAULT_METHOD = "fitness"
DEFAULT_ITERATIONS = 100
DEFAULT_EXTREMALITY = 1.0

# Reflections power iteration: L1 change of the unit iterate, and its hard cap
REFLECTIONS_TOLERANCE = 1e-10
REFLECTIONS_MAX_ITERATIONS = 10000

# Proximity / projections
COMPUTE_OPTIONS = ("both", "country", "product")
DEFAULT_THRESHOLD = 0.0
COMMUNITY_METHODS = ("louvain", "fluid", "greedy")

# Logging
LOG_LEVEL = os.environ.get("ECONCOMPLEX_LOG_LEVEL", "WARNING")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
