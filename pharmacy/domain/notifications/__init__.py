# Notifications domain module
