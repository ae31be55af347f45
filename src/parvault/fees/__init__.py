from parvault.fees.performance import PerformanceFeeEngine

__all__ = ["PerformanceFeeEngine"]
