"""Due-date notification package.

Finds overdue and due-soon assignments, renders HTML digests from the
templates in ``templates/``, and delivers them over SMTP.
"""
