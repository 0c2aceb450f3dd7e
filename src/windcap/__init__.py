# ============================================
# windcap - src/windcap/__init__.py
# Wind turbine capacity regression with cross-validated KNN
# ============================================

__version__ = "0.1.0"
