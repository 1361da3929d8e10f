"""Core engine: records, variables, binning, histograms, spectra and the loader."""
