"""Language model access: prompt construction and the Groq chat client."""
