import io
import json
import os
import tempfile
import zipfile

import requests
import shapefile

BASE_URL = "https://naciscdn.org/naturalearth/110m/cultural"
NAME = "ne_110m_admin_0_countries"

# Natural Earth leaves ISO_A3 as "-99" for a few disputed or dependent
# territories; ADM0_A3 carries a usable code for them.
CODE_FIELDS = ("ISO_A3", "ADM0_A3")
NAME_FIELD = "NAME"


def round_coords(coords, places=3):
    if isinstance(coords, (list, tuple)):
        return [round_coords(c, places) for c in coords]
    if isinstance(coords, float):
        return round(coords, places)
    return coords


def country_code(props):
    for field in CODE_FIELDS:
        code = str(props.get(field) or "").strip().upper()
        if len(code) == 3 and code != "-99":
            return code
    return None


def shape_to_feature(shape_obj, props):
    geom = shape_obj.__geo_interface__
    geom["coordinates"] = round_coords(geom["coordinates"])
    code = country_code(props)
    return {
        "type": "Feature",
        "id": code,
        "properties": {"id": code, "name": props.get(NAME_FIELD, "")},
        "geometry": geom,
    }


def read_shapefile(name):
    url = f"{BASE_URL}/{name}.zip"
    resp = requests.get(url, timeout=60)
    resp.raise_for_status()
    with tempfile.TemporaryDirectory() as tmpdir:
        with zipfile.ZipFile(io.BytesIO(resp.content)) as zf:
            zf.extractall(tmpdir)
        shp_path = os.path.join(tmpdir, f"{name}.shp")
        reader = shapefile.Reader(shp_path)
        fields = [f[0] for f in reader.fields[1:]]
        features = []
        for sr, shape_obj in zip(reader.records(), reader.shapes()):
            props = dict(zip(fields, sr))
            feature = shape_to_feature(shape_obj, props)
            if feature["id"] is None:
                print(f"skipping {props.get(NAME_FIELD)!r}: no ISO code")
                continue
            features.append(feature)
        reader.close()
    return {"type": "FeatureCollection", "features": features}


def write_geojson(path, data):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, separators=(",", ":"))


def main():
    base_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    out_dir = os.path.join(base_dir, "data")
    os.makedirs(out_dir, exist_ok=True)

    world = read_shapefile(NAME)
    write_geojson(os.path.join(out_dir, "world.geojson"), world)
    print(f"wrote {len(world['features'])} countries")


if __name__ == "__main__":
    main()
