"""Reservation scheduling and availability rules.

Leaf-first: TimeWindow, OperatingHoursResolver, PeakPolicy, ConflictChecker,
TableAllocator, AvailabilitySlotGenerator, SlotCache, WaitlistPromoter.
Import from the submodules directly.
"""
