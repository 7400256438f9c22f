"""Application services for the playpub CLI.

Services implement the publishing logic, coordinating between the domain
layer (core/) and infrastructure (platform/, the Google Play backend).
"""
