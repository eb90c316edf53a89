"""
Assistant error types.

Each error carries the HTTP status the views answer with and a Portuguese
``user_message`` that is safe to show in the admin chat.
"""


class IntelligenceError(Exception):
    """Base assistant error."""

    def __init__(self, message, status_code=500, user_message=None, details=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.user_message = user_message
        self.details = details

    @property
    def display_message(self):
        return self.user_message or self.message


class ValidationError(IntelligenceError):
    """Invalid input or an action that cannot proceed as requested."""

    def __init__(self, message, details=None):
        super().__init__(
            message,
            400,
            f"Erro de validação: {message}. Por favor, verifique os dados e tente novamente.",
            details,
        )


class NotFoundError(IntelligenceError):
    """The targeted record (or pending action) does not exist."""

    def __init__(self, entity_name):
        super().__init__(
            f"{entity_name} não encontrado",
            404,
            f"{entity_name} não encontrado. Por favor, verifique os dados e tente novamente.",
        )
        self.entity_name = entity_name


class TimeoutError(IntelligenceError):
    """The LLM did not answer in time."""

    def __init__(self):
        super().__init__(
            'Timeout ao processar requisição',
            503,
            'A requisição demorou muito para processar. Por favor, tente novamente em alguns instantes.',
        )
