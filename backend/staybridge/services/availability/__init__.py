"""Availability engine: multi-party availability, pricing and installments.

Modules:
    config          PricingPolicy / PaymentPolicy value objects
    errors          Validation, policy and upstream errors
    results         Ok | Conflict | Invalid outcome of a merge
    models          Party groups, rate keys, quotes, windows, installments
    party_planner   Room request → canonical party groups
    pricing         Net price → guest price
    merger          Per-party provider fan-out and merge, checkout matching
    alternatives    Flexible-calendar windows common to every party
    installments    Confirmed total → deposit and installment plan

Pipeline:
    PartyPlanner → AvailabilityMerger (PricingEngine per rate)
    → AlternativeDateFinder when nothing matches → InstallmentScheduler on checkout
"""
