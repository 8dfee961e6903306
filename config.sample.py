# Harmony MQTT Bridge Configuration Template
# Rename this file to 'config.py' and fill in your details

# HUB Connection Details
HUB_IP = "192.168.1.X"      # Your Harmony Hub IP Address
REMOTE_ID = ""              # Leave empty to discover it from the hub
HARMONY_NAME = "living-room" # Used in topics: harmony/<HARMONY_NAME>/...

# MQTT Broker
BROKER_HOST = "192.168.1.Y"
BROKER_PORT = 1883
BROKER_USERNAME = ""
BROKER_PASSWORD = ""

# Topic prefix (topics start with <TOPIC_PREFIX>/<HARMONY_NAME>)
TOPIC_PREFIX = "harmony"
