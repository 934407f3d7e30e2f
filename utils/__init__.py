"""
Utility package setup.

Enables pandas Copy-on-Write globally for the local extracts pulled back
from the H2O cluster.
"""

import pandas as pd

pd.options.mode.copy_on_write = True
