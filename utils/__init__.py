"""
Utility package setup.

Enables pandas Copy-on-Write globally so row subsets handed to folds and
recipe steps never write through to the loaded dataset.
"""

import pandas as pd

# Reduce implicit copies across the pipeline.
pd.options.mode.copy_on_write = True
