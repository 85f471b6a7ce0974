"""DIP Ports – interfaces the services depend on."""
