from celine.outlet.core.transport.mqtt import AiomqttHandle, AiomqttTransportFactory

__all__ = ["AiomqttHandle", "AiomqttTransportFactory"]
