"""Application services wiring the engine components together"""
