"""HR administration service.

Feature modules (clients, employees, cost centers, locations, assignments)
each ship a domain model, a repository interface with its MySQL
implementation, a service holding the business rules and a thin Flask
controller. Employee notifications leave through a transactional outbox.
"""
