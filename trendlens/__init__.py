# This package contains the backend logic for the TrendLens dashboard.
#
# Modules are imported as trendlens.technicals, trendlens.prices, etc.  The
# package itself performs no side-effects at import time.
