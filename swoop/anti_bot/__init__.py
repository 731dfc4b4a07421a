"""In-memory sessions, proxy pools, synthetic behaviour timing and request header profiles."""