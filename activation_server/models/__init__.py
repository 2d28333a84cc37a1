from activation_server.models.activation_record import ActivationRecordRow

__all__ = ["ActivationRecordRow"]
