from parvault.vesting.schedule import VestingSchedule

__all__ = ["VestingSchedule"]
