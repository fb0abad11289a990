"""HTTP routers for the grid explorer and the tutoring portal"""
