"""Employees module — account models, schemas and services."""

from leave_management.employees.models import AdminAccount, Account, EmployeeAccount

__all__ = ["Account", "AdminAccount", "EmployeeAccount"]
