SERVICE_NAME = 'qrhub-scan'
HEALTHY_MESSAGE = 'QR scan service is healthy'
