# Reports domain module
