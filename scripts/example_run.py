from pathlib import Path
import pandas as pd

if __name__ == '__main__':
    from sdmclim.grids import BoundingBox
    from sdmclim.io import GridFetcher, VariableSpec, serialize_grid
    from sdmclim.sampling import sample_background, thin_by_species

    out_dir = Path('local/data')
    window = BoundingBox(xmin=-11, ymin=48, xmax=3, ymax=61)

    # historical yearly means and projected values for the same variable
    fetcher = GridFetcher()
    for spec in [
        VariableSpec(period='historical', variable='sst', parameter='mean', temporal_resolution='range', time_selector=range(2010, 2020)),
        VariableSpec(period='projected', variable='sst', parameter='mean', scenario='ssp245', time_selector=2050),
        VariableSpec(period='historical', variable='heatwave', temporal_resolution='summer'),
    ]:
        grid = fetcher.fetch(spec, window)
        serialize_grid(grid, 'netcdf', out_dir / 'climate', spec)

    # occurrences: lon, lat, species columns
    occurrences = pd.read_csv(out_dir / 'occurrences.csv')
    thinned = thin_by_species(occurrences, 'species', resolution=0.05, seed=1)

    for species, records in thinned.items():
        presences = records[records['presence'] == 1]
        result = sample_background(presences, radius=30_000, n_samples=1000, resolution=0.05, seed=1)
        print(species, len(records), len(result.candidates), len(result.background))
        result.background.to_csv(out_dir / f"background_{species.replace(' ', '_')}.csv", index=False)
