# Plugins: model providers and output formatters.
