"""Leave Management — employee leave requests and balance accounting."""
