"""Task Manager API: accounts, roles and shared tasks."""
