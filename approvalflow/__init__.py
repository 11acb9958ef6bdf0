"""ApprovalFlow: sequential, role-ordered approval workflow engine."""

__version__ = "1.0.0"
