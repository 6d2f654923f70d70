"""Pure domain layer: DTOs, account roles, balance validation, clock."""
